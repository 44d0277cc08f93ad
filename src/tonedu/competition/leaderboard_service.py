"""Leaderboard engine: all-time ranking by a point score.

Points combine three signals per user:

    points = round(reward_total * 1000 + completed_courses * 200 + certificates * 500)

The ranking is rebuilt from the store on every call; there is no
materialised aggregate to keep in sync.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from tonedu.store.base import EntityStore
from tonedu.store.entities import Certificate, Reward, User, UserCourse

logger = structlog.get_logger()

POINTS_PER_TON = 1000
POINTS_PER_COMPLETED_COURSE = 200
POINTS_PER_CERTIFICATE = 500
ALL_TIME = "all-time"


def compute_points(reward_total: float, completed_courses: int, certificates: int) -> int:
    """Point score rounded half-up."""
    raw = (
        reward_total * POINTS_PER_TON
        + completed_courses * POINTS_PER_COMPLETED_COURSE
        + certificates * POINTS_PER_CERTIFICATE
    )
    return math.floor(raw + 0.5)


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    id: int
    display_name: str
    username: str
    wallet_address: str | None
    points: int
    completed_courses: int
    certificates: int


def build_leaderboard(
    users: Sequence[User],
    user_courses: Sequence[UserCourse],
    certificates: Sequence[Certificate],
    rewards: Sequence[Reward],
) -> list[LeaderboardEntry]:
    """Rank users by points, highest first.

    Ties keep the order of ``users`` (stable sort); tied users get
    consecutive ranks.
    """
    completed = Counter(uc.user_id for uc in user_courses if uc.completed_at is not None)
    certificate_counts = Counter(c.user_id for c in certificates)
    reward_totals: dict[int, float] = defaultdict(float)
    for reward in rewards:
        reward_totals[reward.user_id] += reward.amount

    scored = [
        (
            user,
            compute_points(reward_totals[user.id], completed[user.id], certificate_counts[user.id]),
        )
        for user in users
    ]
    scored.sort(key=lambda pair: pair[1], reverse=True)

    return [
        LeaderboardEntry(
            rank=position,
            id=user.id,
            display_name=user.display_name,
            username=user.username,
            wallet_address=user.wallet_address,
            points=points,
            completed_courses=completed[user.id],
            certificates=certificate_counts[user.id],
        )
        for position, (user, points) in enumerate(scored, start=1)
    ]


class LeaderboardService:
    def __init__(self, store: EntityStore) -> None:
        self.store = store

    async def get_leaderboard(self, period: str | None = None) -> tuple[list[LeaderboardEntry], str]:
        """Full ranking. ``period`` is accepted but every period is all-time.

        Returns:
            The ranked entries and the period actually applied.
        """
        if period and period != ALL_TIME:
            logger.debug("leaderboard_period_ignored", period=period)
        entries = build_leaderboard(
            await self.store.list_users(),
            await self.store.list_user_courses(),
            await self.store.list_certificates(),
            await self.store.list_rewards(),
        )
        return entries, ALL_TIME
