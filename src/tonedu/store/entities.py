"""Entity models shared by every store backend and the engines.

Entities are immutable snapshots: stores hand out fresh copies and engines
write changes back through the store, never by mutating a returned object.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

REASON_COURSE_COMPLETION = "Course Completion"
REASON_REFERRAL_BONUS = "Referral Bonus"


class _Entity(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


# ---------------------------------------------------------------------------
# Persisted entities
# ---------------------------------------------------------------------------


class User(_Entity):
    id: int
    telegram_id: str
    username: str
    display_name: str
    wallet_address: str | None = None
    balance: float = 0.0
    referral_code: str
    referred_by: int | None = None
    referral_count: int = 0
    referral_tier: int = 0
    is_admin: bool = False
    created_at: datetime


class Course(_Entity):
    id: int
    title: str
    description: str = ""
    level: str
    duration: str
    thumbnail: str = ""
    min_reward: float
    max_reward: float
    active: bool = True
    created_at: datetime


class Lesson(_Entity):
    id: int
    course_id: int
    title: str
    content: str = ""
    duration: str = ""
    order_number: int
    created_at: datetime


class UserCourse(_Entity):
    """Enrolment of a user in a course, with derived progress."""

    id: int
    user_id: int
    course_id: int
    progress: int = 0
    started_at: datetime
    completed_at: datetime | None = None
    reward_claimed: bool = False
    reward_amount: float | None = None


class UserLesson(_Entity):
    """Completion record of one lesson by one user."""

    id: int
    user_id: int
    lesson_id: int
    course_id: int
    completed: bool = False
    completed_at: datetime | None = None


class Certificate(_Entity):
    id: int
    user_id: int
    course_id: int
    name: str
    course_title: str
    issued_date: date
    token_id: str | None = None
    tx_hash: str | None = None
    skills: list[str] = Field(default_factory=list)
    template_id: str = "default"
    description: str = ""
    issuer: str
    valid_until: date | None = None
    mint_metadata: dict[str, Any] = Field(default_factory=dict)


class Reward(_Entity):
    id: int
    user_id: int
    amount: float
    reason: str
    course_id: int | None = None
    tx_hash: str | None = None
    created_at: datetime


class ReferralTier(_Entity):
    id: int
    tier: int
    name: str
    required_referrals: int
    reward_multiplier: float = 1.0
    description: str = ""


# ---------------------------------------------------------------------------
# Insert payloads
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    telegram_id: str
    username: str
    display_name: str
    referral_code: str
    wallet_address: str | None = None
    is_admin: bool = False


class CourseCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = ""
    level: str
    duration: str
    thumbnail: str = ""
    min_reward: float = Field(ge=0)
    max_reward: float = Field(ge=0)
    active: bool = True

    @model_validator(mode="after")
    def _check_reward_range(self) -> CourseCreate:
        if self.min_reward > self.max_reward:
            msg = "min_reward must not exceed max_reward"
            raise ValueError(msg)
        return self


class LessonCreate(BaseModel):
    course_id: int
    title: str = Field(min_length=1)
    content: str = ""
    duration: str = ""
    order_number: int = Field(ge=0)


class CertificateCreate(BaseModel):
    user_id: int
    course_id: int
    name: str
    course_title: str
    issued_date: date
    issuer: str
    token_id: str | None = None
    tx_hash: str | None = None
    skills: list[str] = Field(default_factory=list)
    template_id: str = "default"
    description: str = ""
    valid_until: date | None = None
    mint_metadata: dict[str, Any] = Field(default_factory=dict)


class RewardCreate(BaseModel):
    user_id: int
    amount: float = Field(ge=0)
    reason: str
    course_id: int | None = None
    tx_hash: str | None = None


class ReferralTierCreate(BaseModel):
    tier: int = Field(ge=0)
    name: str
    required_referrals: int = Field(ge=0)
    reward_multiplier: float = Field(default=1.0, gt=0)
    description: str = ""
