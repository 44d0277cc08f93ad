"""Shared test fixtures."""

from __future__ import annotations

import itertools
import random
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tonedu.config import Settings
from tonedu.db.base import Base
from tonedu.education.progress_service import ProgressService
from tonedu.ledger.service import LedgerService, MintResult, SimulatedLedger, TransferResult
from tonedu.main import create_app
from tonedu.store.base import EntityStore
from tonedu.store.entities import Course, CourseCreate, Lesson, LessonCreate, User, UserCreate
from tonedu.store.memory import InMemoryStore
from tonedu.store.seed import seed_referral_tiers
from tonedu.store.sql import SqlStore

DISTRIBUTION_WALLET = "0:83dfd552e63729b472fcbcc8c45ebcc6691702558b68ec7527e1ba403a0f31a8"
LEARNER_WALLET = "0:" + "1f" * 32
REFERRER_WALLET = "-1:" + "a5" * 32


class FailingLedger(LedgerService):
    """Ledger double that accepts any address but rejects every operation."""

    def __init__(self) -> None:
        self.transfers: list[tuple[str, float, str | None]] = []
        self.mints: list[tuple[str, dict[str, Any]]] = []

    def is_valid_address(self, address: str | None) -> bool:
        return bool(address)

    async def transfer(self, to_address: str, amount: float, memo: str | None = None) -> TransferResult:
        self.transfers.append((to_address, amount, memo))
        return TransferResult(success=False, error="Insufficient balance in distribution wallet")

    async def mint_certificate(self, to_address: str, metadata: dict[str, Any]) -> MintResult:
        self.mints.append((to_address, metadata))
        return MintResult(success=False, error="Collection contract rejected the mint")


# ---------------------------------------------------------------------------
# Stores and ledgers
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> EntityStore:
    """Fresh in-memory store. SQL test modules override this fixture."""
    return InMemoryStore()


@pytest.fixture
def ledger() -> SimulatedLedger:
    """Simulated ledger with a fixed seed and no artificial latency."""
    return SimulatedLedger(random.Random(7), distribution_wallet=DISTRIBUTION_WALLET, delay_seconds=0)


@pytest.fixture
def failing_ledger() -> FailingLedger:
    return FailingLedger()


@pytest_asyncio.fixture
async def tiers(store: EntityStore) -> EntityStore:
    """Store with the default Base/Bronze/Silver/Gold tiers."""
    await seed_referral_tiers(store)
    return store


@pytest_asyncio.fixture
async def sql_store(tmp_path: Path) -> AsyncGenerator[SqlStore, None]:
    """SqlStore over a throwaway SQLite file with the full schema."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tonedu.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield SqlStore(session)
    await engine.dispose()


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(store: EntityStore) -> Callable[..., Awaitable[User]]:
    """Create users with unique telegram ids, usernames and referral codes."""
    counter = itertools.count(1)

    async def _make(**overrides: Any) -> User:
        n = next(counter)
        data: dict[str, Any] = {
            "telegram_id": f"{100000 + n}",
            "username": f"learner{n}",
            "display_name": f"Learner {n}",
            "referral_code": f"REFTEST{n:04d}",
        }
        data.update(overrides)
        async with store.transaction():
            return await store.create_user(UserCreate(**data))

    return _make


@pytest.fixture
def make_course(store: EntityStore) -> Callable[..., Awaitable[tuple[Course, list[Lesson]]]]:
    """Create a course with ``lessons`` ordered lessons."""

    async def _make(
        lessons: int = 3,
        min_reward: float = 0.5,
        max_reward: float = 1.5,
        **overrides: Any,
    ) -> tuple[Course, list[Lesson]]:
        data: dict[str, Any] = {
            "title": "TON Basics",
            "description": "Wallets, addresses and the TON virtual machine",
            "level": "Beginner",
            "duration": "2 hours",
            "min_reward": min_reward,
            "max_reward": max_reward,
        }
        data.update(overrides)
        async with store.transaction():
            course = await store.create_course(CourseCreate(**data))
            created = [
                await store.create_lesson(
                    LessonCreate(course_id=course.id, title=f"Lesson {i}", content=f"Content {i}", order_number=i)
                )
                for i in range(1, lessons + 1)
            ]
        return course, created

    return _make


@pytest.fixture
def finish_course(store: EntityStore) -> Callable[[int, list[Lesson]], Awaitable[None]]:
    """Complete every given lesson for a user."""

    async def _finish(user_id: int, lessons: list[Lesson]) -> None:
        progress = ProgressService(store)
        for lesson in lessons:
            await progress.complete_lesson(user_id, lesson.id)

    return _finish


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "storage_backend": "memory",
        "seed_demo_data": False,
        "random_seed": 1234,
        "ton_simulation_delay_ms": 0,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def build_app(store: EntityStore, ledger: SimulatedLedger) -> Callable[..., FastAPI]:
    """App factory over the shared store and ledger; keyword arguments override settings."""

    def _build(**overrides: Any) -> FastAPI:
        return create_app(make_settings(**overrides), store=store, ledger=ledger)

    return _build


@pytest_asyncio.fixture
async def client(store: EntityStore, ledger: SimulatedLedger) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the app, sharing the ``store`` fixture with the test.

    ASGITransport does not run the lifespan, so Redis stays uninitialised
    (rate limiting is skipped) and tiers are seeded here.
    """
    app = create_app(make_settings(), store=store, ledger=ledger)
    await seed_referral_tiers(store)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
