"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Request
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tonedu.database import get_session
from tonedu.redis_client import get_redis, redis_configured

router = APIRouter()

_OK_STATES = frozenset({"ok", "disabled", "memory"})


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(request: Request) -> dict[str, object]:
    """Readiness probe: checks the database (SQL backend) and Redis."""
    checks: dict[str, object] = {}

    if request.app.state.store is not None:
        checks["database"] = "memory"
    else:
        try:
            async for db in get_session():
                result = await db.execute(text("SELECT 1"))
                result.scalar()
            checks["database"] = "ok"
        except (SQLAlchemyError, OSError, RuntimeError) as exc:
            checks["database"] = f"error: {exc}"

    if not redis_configured():
        checks["redis"] = "disabled"
    else:
        try:
            await get_redis().ping()
            checks["redis"] = "ok"
        except (RedisError, OSError) as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = all(v in _OK_STATES for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version(request: Request) -> dict[str, str]:
    """Return API version and environment."""
    settings = request.app.state.settings
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
