"""Reward, referral and referral tier endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tonedu.dependencies import get_reward_service
from tonedu.rewards.reward_service import RewardService
from tonedu.rewards.schemas import (
    ReferralRequest,
    ReferralResponse,
    ReferralStatusResponse,
    ReferralTierUpdateRequest,
    RewardClaimResponse,
)
from tonedu.store.entities import ReferralTier, ReferralTierCreate, Reward

router = APIRouter(prefix="/api/v1", tags=["Rewards"])


# ---- Course rewards ----


@router.post("/users/{user_id}/courses/{course_id}/reward", status_code=201)
async def claim_course_reward(
    user_id: int,
    course_id: int,
    svc: RewardService = Depends(get_reward_service),  # noqa: B008
) -> RewardClaimResponse:
    """Pay the completion reward of a finished course to the user's wallet."""
    claim = await svc.claim_course_reward(user_id, course_id)
    return RewardClaimResponse(reward=claim.reward, new_balance=claim.new_balance)


@router.get("/users/{user_id}/rewards")
async def list_user_rewards(
    user_id: int,
    svc: RewardService = Depends(get_reward_service),  # noqa: B008
) -> list[Reward]:
    return await svc.list_rewards(user_id)


# ---- Referrals ----


@router.post("/users/{user_id}/referral")
async def submit_referral(
    user_id: int,
    body: ReferralRequest,
    svc: RewardService = Depends(get_reward_service),  # noqa: B008
) -> ReferralResponse:
    outcome = await svc.submit_referral(user_id, body.referral_code)
    return ReferralResponse(
        referrer=outcome.referrer.display_name,
        referral_tier=outcome.referral_tier,
        bonus_paid=outcome.bonus is not None,
    )


@router.get("/users/{user_id}/referral-tier")
async def get_referral_status(
    user_id: int,
    svc: RewardService = Depends(get_reward_service),  # noqa: B008
) -> ReferralStatusResponse:
    status = await svc.get_referral_status(user_id)
    return ReferralStatusResponse(
        tier=status.tier,
        tier_details=status.tier_details,
        referral_count=status.referral_count,
        next_tier=status.next_tier,
    )


# ---- Tiers ----


@router.get("/referral-tiers")
async def list_referral_tiers(
    svc: RewardService = Depends(get_reward_service),  # noqa: B008
) -> list[ReferralTier]:
    return await svc.list_referral_tiers()


@router.post("/referral-tiers", status_code=201)
async def create_referral_tier(
    body: ReferralTierCreate,
    svc: RewardService = Depends(get_reward_service),  # noqa: B008
) -> ReferralTier:
    return await svc.create_referral_tier(body)


@router.patch("/referral-tiers/{tier}")
async def update_referral_tier(
    tier: int,
    body: ReferralTierUpdateRequest,
    svc: RewardService = Depends(get_reward_service),  # noqa: B008
) -> ReferralTier:
    return await svc.update_referral_tier(tier, body.model_dump(exclude_unset=True, exclude_none=True))
