"""FastAPI application factory."""

import random
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from tonedu.certificates.router import router as certificates_router
from tonedu.competition.router import router as competition_router
from tonedu.config import Settings, get_settings
from tonedu.database import close_db, get_session, init_db
from tonedu.education.router import router as education_router
from tonedu.health.router import router as health_router
from tonedu.ledger.service import LedgerService, SimulatedLedger
from tonedu.middleware import setup_middleware
from tonedu.news.router import router as news_router
from tonedu.redis_client import close_redis, init_redis
from tonedu.rewards.router import router as rewards_router
from tonedu.store.base import EntityStore
from tonedu.store.memory import InMemoryStore
from tonedu.store.seed import seed_demo_data, seed_referral_tiers
from tonedu.store.sql import SqlStore
from tonedu.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings
    store: EntityStore | None = app.state.store

    if store is None:
        await init_db(settings.database_url)
        # Tables may not exist yet if migrations have not run
        try:
            async for session in get_session():
                await seed_referral_tiers(SqlStore(session))
        except (SQLAlchemyError, OSError):
            logger.warning("referral_tier_seeding_failed", exc_info=True)
    else:
        await seed_referral_tiers(store)
        if settings.seed_demo_data:
            await seed_demo_data(store)

    await init_redis(settings.redis_url)

    yield

    if store is None:
        await close_db()
    await close_redis()


def create_app(
    settings: Settings | None = None,
    store: EntityStore | None = None,
    ledger: LedgerService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration; defaults to the environment-derived settings.
        store: Entity store to share across requests. When omitted, the
            memory backend gets a fresh ``InMemoryStore`` and the SQL backend
            opens a ``SqlStore`` per request.
        ledger: Ledger adapter; defaults to ``SimulatedLedger``.
    """
    settings = settings or get_settings()
    rng = random.Random(settings.random_seed)

    if store is None and settings.storage_backend == "memory":
        store = InMemoryStore()
    if ledger is None:
        ledger = SimulatedLedger(
            rng,
            distribution_wallet=settings.ton_wallet_address,
            network=settings.ton_network,
            delay_seconds=settings.ton_simulation_delay_ms / 1000,
        )

    app = FastAPI(
        title="TON Education API",
        description="Backend API for the TON EDUCATION Telegram Mini-App",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store
    app.state.ledger = ledger
    app.state.rng = rng

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(education_router)
    app.include_router(rewards_router)
    app.include_router(certificates_router)
    app.include_router(competition_router)
    app.include_router(news_router)

    return app


app = create_app()
