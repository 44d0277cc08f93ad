"""Request/response schemas for reward, referral and tier endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from tonedu.store.entities import ReferralTier, Reward


class RewardClaimResponse(BaseModel):
    reward: Reward
    new_balance: float


class ReferralRequest(BaseModel):
    referral_code: str = Field(..., min_length=1, max_length=32)


class ReferralResponse(BaseModel):
    success: bool = True
    referrer: str
    referral_tier: int
    bonus_paid: bool


class ReferralStatusResponse(BaseModel):
    tier: int
    tier_details: ReferralTier | None
    referral_count: int
    next_tier: ReferralTier | None


class ReferralTierUpdateRequest(BaseModel):
    name: str | None = None
    required_referrals: int | None = Field(default=None, ge=0)
    reward_multiplier: float | None = Field(default=None, gt=0)
    description: str | None = None
