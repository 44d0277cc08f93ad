"""Per-client fixed-window rate limiting backed by Redis.

Each client IP gets ``requests_per_window`` requests per window. Probes are
never limited, and a missing or unreachable Redis lets every request through.
"""

import time

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from tonedu.redis_client import get_redis, redis_configured

logger = structlog.get_logger()

KEY_PREFIX = "tonedu:rl"
UNLIMITED_PATHS = frozenset({"/health", "/ready"})


async def count_hit(key: str, ttl_seconds: int) -> int:
    """Increment the window counter and return the new count."""
    pipe = get_redis().pipeline()
    pipe.incr(key)
    pipe.expire(key, ttl_seconds)
    count, _ = await pipe.execute()
    return int(count)


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, requests_per_window: int = 100, window_seconds: int = 60) -> None:
        super().__init__(app)
        self.limit = requests_per_window
        self.window = window_seconds

    def _key(self, request: Request) -> str:
        host = request.client.host if request.client else "unknown"
        return f"{KEY_PREFIX}:{host}:{int(time.time()) // self.window}"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in UNLIMITED_PATHS or not redis_configured():
            return await call_next(request)

        try:
            count = await count_hit(self._key(request), self.window + 1)
        except (RedisError, OSError) as exc:
            logger.warning("rate_limit_unavailable", error=str(exc))
            return await call_next(request)

        limit_headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, self.limit - count)),
        }
        if count > self.limit:
            logger.info("rate_limited", count=count, limit=self.limit)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later.", "code": "rate_limited"},
                headers={**limit_headers, "Retry-After": str(self.window)},
            )

        response = await call_next(request)
        response.headers.update(limit_headers)
        return response
