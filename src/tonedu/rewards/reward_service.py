"""Reward & tier engine: course payouts, referral bonuses, referral tiers.

Course rewards are all-or-nothing: the claim flag, the ledger transfer,
the Reward record and the balance change commit together or not at all.
Referral links are independent of payment: the link, count and tier
update commit first and the referrer's bonus is paid best-effort.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from tonedu.errors import (
    AlreadyClaimed,
    AlreadyReferred,
    CourseNotCompleted,
    ExternalServiceFailure,
    InvalidInputError,
    NoWalletAddress,
    NotFoundError,
    SelfReferral,
)
from tonedu.ledger.service import LedgerService
from tonedu.rewards.referral_codes import normalize_referral_code
from tonedu.store.base import EntityStore
from tonedu.store.entities import (
    REASON_COURSE_COMPLETION,
    REASON_REFERRAL_BONUS,
    Course,
    ReferralTier,
    ReferralTierCreate,
    Reward,
    RewardCreate,
    User,
)

logger = structlog.get_logger()

DEFAULT_BASE_REFERRAL_REWARD = 0.05
BASE_TIER = 0
TON_DECIMALS = 9


# ---------------------------------------------------------------------------
# Pure computations
# ---------------------------------------------------------------------------


def sample_course_reward(course: Course, rng: random.Random) -> float:
    """Uniform amount in [min_reward, max_reward], rounded to 2 decimals."""
    amount = course.min_reward + rng.random() * (course.max_reward - course.min_reward)
    return round(amount, 2)


def select_referral_tier(tiers: Sequence[ReferralTier], referral_count: int) -> int:
    """Highest tier whose threshold is met, or the base tier if none is."""
    for tier in sorted(tiers, key=lambda t: t.required_referrals, reverse=True):
        if tier.required_referrals <= referral_count:
            return tier.tier
    return BASE_TIER


def next_referral_tier(tiers: Sequence[ReferralTier], referral_count: int) -> ReferralTier | None:
    """Lowest tier not yet reached, or None at the top of the staircase."""
    upcoming = [t for t in tiers if t.required_referrals > referral_count]
    return min(upcoming, key=lambda t: t.required_referrals, default=None)


def referral_reward_for(base_reward: float, tier: ReferralTier | None) -> float:
    """Base referral reward scaled by the tier multiplier (1.0 without a tier row)."""
    multiplier = tier.reward_multiplier if tier is not None else 1.0
    return round(base_reward * multiplier, TON_DECIMALS)


def _check_staircase(tiers: list[tuple[int, int]]) -> None:
    """Thresholds must strictly increase with the tier number."""
    thresholds = [required for _, required in sorted(tiers)]
    if any(lower >= upper for lower, upper in zip(thresholds, thresholds[1:])):
        raise InvalidInputError("Referral thresholds must strictly increase with the tier number")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RewardClaim:
    reward: Reward
    new_balance: float


@dataclass(frozen=True)
class ReferralOutcome:
    referrer: User
    referral_tier: int
    bonus: Reward | None


@dataclass(frozen=True)
class ReferralStatus:
    tier: int
    tier_details: ReferralTier | None
    referral_count: int
    next_tier: ReferralTier | None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class RewardService:
    """Course reward claims, referrals and referral tier maintenance."""

    def __init__(
        self,
        store: EntityStore,
        ledger: LedgerService,
        rng: random.Random,
        base_referral_reward: float = DEFAULT_BASE_REFERRAL_REWARD,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.rng = rng
        self.base_referral_reward = base_referral_reward

    # --- Course rewards ---

    async def claim_course_reward(self, user_id: int, course_id: int) -> RewardClaim:
        """Pay out the completion reward of a course exactly once."""
        user = await self.store.get_user(user_id)
        course = await self.store.get_course(course_id)
        if user is None or course is None:
            raise NotFoundError("User or course not found")

        user_course = await self.store.get_user_course(user_id, course_id)
        if user_course is None or user_course.completed_at is None:
            raise CourseNotCompleted()
        if not user.wallet_address:
            raise NoWalletAddress()

        amount = sample_course_reward(course, self.rng)

        # The claimed flag is only checked under the transaction: outside it a
        # concurrent claim that is still waiting on the ledger may be visible.
        async with self.store.transaction():
            if not await self.store.claim_user_course_reward(user_course.id, amount):
                raise AlreadyClaimed()

            tx_hash: str | None = None
            # A 0.00 draw (ranges starting at 0) is claimed without an on-chain transfer
            if amount > 0:
                tx_hash = await self._transfer_course_reward(user, course, amount)

            reward = await self.store.create_reward(
                RewardCreate(
                    user_id=user_id,
                    amount=amount,
                    reason=REASON_COURSE_COMPLETION,
                    course_id=course_id,
                    tx_hash=tx_hash,
                )
            )
            updated = await self.store.increment_user_balance(user_id, amount)

        new_balance = updated.balance if updated is not None else user.balance + amount
        logger.info(
            "course_reward_claimed",
            user_id=user_id,
            course_id=course_id,
            amount=amount,
            tx_hash=tx_hash,
        )
        return RewardClaim(reward=reward, new_balance=new_balance)

    async def _transfer_course_reward(self, user: User, course: Course, amount: float) -> str | None:
        result = await self.ledger.transfer(
            user.wallet_address or "",
            amount,
            f"TON Education - {course.title} Completion Reward",
        )
        if not result.success:
            logger.warning(
                "course_reward_transfer_failed",
                user_id=user.id,
                course_id=course.id,
                amount=amount,
                error=result.error,
            )
            raise ExternalServiceFailure(result.error or "Failed to transfer TON")
        return result.tx_hash

    async def list_rewards(self, user_id: int) -> list[Reward]:
        if await self.store.get_user(user_id) is None:
            raise NotFoundError("User not found")
        return await self.store.list_rewards(user_id=user_id)

    # --- Referrals ---

    async def submit_referral(self, user_id: int, referral_code: str) -> ReferralOutcome:
        """Link a user to the owner of ``referral_code`` and pay the referrer."""
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        code = normalize_referral_code(referral_code or "")
        if not code:
            raise InvalidInputError("Referral code is required")

        referrer = await self.store.get_user_by_referral_code(code)
        if referrer is None:
            raise NotFoundError("Referrer not found")
        if referrer.id == user.id:
            raise SelfReferral()
        if user.referred_by is not None:
            raise AlreadyReferred()

        async with self.store.transaction():
            if not await self.store.set_referred_by(user.id, referrer.id):
                raise AlreadyReferred()
            await self.store.increment_referral_count(referrer.id)
            tier = await self._apply_referral_tier(referrer.id)

        referrer = await self.store.get_user(referrer.id) or referrer
        logger.info(
            "referral_applied",
            user_id=user.id,
            referrer_id=referrer.id,
            referral_count=referrer.referral_count,
            referral_tier=tier,
        )

        bonus = await self._pay_referral_bonus(referrer)
        if bonus is not None:
            referrer = await self.store.get_user(referrer.id) or referrer
        return ReferralOutcome(referrer=referrer, referral_tier=tier, bonus=bonus)

    async def referral_reward_amount(self, user_id: int) -> float:
        """Referral bonus the user currently earns per referral."""
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        tier = await self.store.get_referral_tier(user.referral_tier)
        return referral_reward_for(self.base_referral_reward, tier)

    async def _pay_referral_bonus(self, referrer: User) -> Reward | None:
        amount = await self.referral_reward_amount(referrer.id)
        if not referrer.wallet_address:
            logger.warning("referral_bonus_skipped", referrer_id=referrer.id, reason="no_wallet_address")
            return None

        result = await self.ledger.transfer(referrer.wallet_address, amount, "TON Education - Referral Bonus")
        if not result.success:
            logger.warning(
                "referral_bonus_skipped",
                referrer_id=referrer.id,
                reason="transfer_failed",
                error=result.error,
            )
            return None

        async with self.store.transaction():
            reward = await self.store.create_reward(
                RewardCreate(
                    user_id=referrer.id,
                    amount=amount,
                    reason=REASON_REFERRAL_BONUS,
                    tx_hash=result.tx_hash,
                )
            )
            await self.store.increment_user_balance(referrer.id, amount)
        logger.info("referral_bonus_paid", referrer_id=referrer.id, amount=amount, tx_hash=result.tx_hash)
        return reward

    # --- Tiers ---

    async def update_user_referral_tier(self, user_id: int) -> int:
        """Recompute and persist a user's referral tier. Returns the tier."""
        if await self.store.get_user(user_id) is None:
            raise NotFoundError("User not found")
        async with self.store.transaction():
            return await self._apply_referral_tier(user_id)

    async def _apply_referral_tier(self, user_id: int) -> int:
        """Tier recomputation for use inside an open transaction."""
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        tiers = await self.store.list_referral_tiers()
        new_tier = select_referral_tier(tiers, user.referral_count)
        if new_tier != user.referral_tier:
            await self.store.update_user(user_id, referral_tier=new_tier)
            logger.info(
                "referral_tier_changed",
                user_id=user_id,
                old_tier=user.referral_tier,
                new_tier=new_tier,
                referral_count=user.referral_count,
            )
        return new_tier

    async def get_referral_status(self, user_id: int) -> ReferralStatus:
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        tiers = await self.store.list_referral_tiers()
        return ReferralStatus(
            tier=user.referral_tier,
            tier_details=next((t for t in tiers if t.tier == user.referral_tier), None),
            referral_count=user.referral_count,
            next_tier=next_referral_tier(tiers, user.referral_count),
        )

    async def list_referral_tiers(self) -> list[ReferralTier]:
        return await self.store.list_referral_tiers()

    async def create_referral_tier(self, data: ReferralTierCreate) -> ReferralTier:
        tiers = await self.store.list_referral_tiers()
        if any(t.tier == data.tier for t in tiers):
            raise InvalidInputError(f"Referral tier {data.tier} already exists")
        _check_staircase([(t.tier, t.required_referrals) for t in tiers] + [(data.tier, data.required_referrals)])
        async with self.store.transaction():
            tier = await self.store.create_referral_tier(data)
        logger.info("referral_tier_created", tier=tier.tier, required_referrals=tier.required_referrals)
        return tier

    async def update_referral_tier(self, tier: int, changes: dict[str, Any]) -> ReferralTier:
        tiers = await self.store.list_referral_tiers()
        if not any(t.tier == tier for t in tiers):
            raise NotFoundError("Referral tier not found")
        if "required_referrals" in changes:
            _check_staircase(
                [
                    (t.tier, changes["required_referrals"] if t.tier == tier else t.required_referrals)
                    for t in tiers
                ]
            )
        async with self.store.transaction():
            updated = await self.store.update_referral_tier(tier, **changes)
        if updated is None:
            raise NotFoundError("Referral tier not found")
        return updated
