"""Shared FastAPI dependencies.

The store, ledger and random source live on ``app.state`` (set by
``create_app``); engines are built per request around them.
"""

import random
from collections.abc import AsyncGenerator

from fastapi import Depends, Request

from tonedu.certificates.certificate_service import CertificateService
from tonedu.competition.leaderboard_service import LeaderboardService
from tonedu.config import Settings
from tonedu.database import get_session
from tonedu.education.catalogue_service import CatalogueService
from tonedu.education.progress_service import ProgressService
from tonedu.ledger.service import LedgerService
from tonedu.rewards.reward_service import RewardService
from tonedu.store.base import EntityStore
from tonedu.store.sql import SqlStore
from tonedu.users.service import UserService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_ledger(request: Request) -> LedgerService:
    return request.app.state.ledger


def get_rng(request: Request) -> random.Random:
    return request.app.state.rng


async def get_store(request: Request) -> AsyncGenerator[EntityStore, None]:
    """Yield the shared in-memory store, or a SqlStore over a fresh session."""
    store: EntityStore | None = request.app.state.store
    if store is not None:
        yield store
        return
    async for session in get_session():
        yield SqlStore(session)


def get_catalogue_service(store: EntityStore = Depends(get_store)) -> CatalogueService:  # noqa: B008
    return CatalogueService(store)


def get_progress_service(store: EntityStore = Depends(get_store)) -> ProgressService:  # noqa: B008
    return ProgressService(store)


def get_reward_service(
    store: EntityStore = Depends(get_store),  # noqa: B008
    ledger: LedgerService = Depends(get_ledger),  # noqa: B008
    rng: random.Random = Depends(get_rng),  # noqa: B008
    settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> RewardService:
    return RewardService(store, ledger, rng, base_referral_reward=settings.base_referral_reward)


def get_certificate_service(
    store: EntityStore = Depends(get_store),  # noqa: B008
    ledger: LedgerService = Depends(get_ledger),  # noqa: B008
    settings: Settings = Depends(get_app_settings),  # noqa: B008
) -> CertificateService:
    return CertificateService(
        store,
        ledger,
        validity_days=settings.certificate_validity_days,
        issuer=settings.certificate_issuer,
    )


def get_leaderboard_service(store: EntityStore = Depends(get_store)) -> LeaderboardService:  # noqa: B008
    return LeaderboardService(store)


def get_user_service(
    store: EntityStore = Depends(get_store),  # noqa: B008
    ledger: LedgerService = Depends(get_ledger),  # noqa: B008
) -> UserService:
    return UserService(store, ledger)
