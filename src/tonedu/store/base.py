"""Entity store contract.

The engines depend only on this interface. Two implementations ship:
``InMemoryStore`` (tests, demo mode) and ``SqlStore`` (PostgreSQL/SQLite via
SQLAlchemy). Stores hold no business rules beyond the conditional updates
needed to make claims and referral links race-free.

Every write must happen inside ``async with store.transaction():``. Leaving
the block normally commits; an exception discards all writes made inside it.
Transactions do not nest.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from typing import Any

from tonedu.store.entities import (
    Certificate,
    CertificateCreate,
    Course,
    CourseCreate,
    Lesson,
    LessonCreate,
    ReferralTier,
    ReferralTierCreate,
    Reward,
    RewardCreate,
    User,
    UserCourse,
    UserCreate,
    UserLesson,
)


class EntityStore(ABC):
    """Async data access for every TON EDUCATION entity."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[None]:
        """Open a unit of work that commits on exit and rolls back on error."""

    # --- Users ---

    @abstractmethod
    async def get_user(self, user_id: int) -> User | None: ...

    @abstractmethod
    async def get_user_by_telegram_id(self, telegram_id: str) -> User | None: ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    async def get_user_by_referral_code(self, referral_code: str) -> User | None:
        """Exact match; callers normalise the code first."""

    @abstractmethod
    async def list_users(self) -> list[User]:
        """All users in id order."""

    @abstractmethod
    async def create_user(self, data: UserCreate) -> User: ...

    @abstractmethod
    async def update_user(self, user_id: int, **changes: Any) -> User | None: ...

    @abstractmethod
    async def increment_user_balance(self, user_id: int, amount: float) -> User | None:
        """Add ``amount`` to the stored balance in a single write."""

    @abstractmethod
    async def increment_referral_count(self, user_id: int) -> User | None: ...

    @abstractmethod
    async def set_referred_by(self, user_id: int, referrer_id: int) -> bool:
        """Link ``user_id`` to its referrer only while no referrer is set.

        Returns False when the user already had a referrer or does not exist.
        """

    # --- Courses ---

    @abstractmethod
    async def get_course(self, course_id: int) -> Course | None: ...

    @abstractmethod
    async def list_courses(self, active_only: bool = False) -> list[Course]: ...

    @abstractmethod
    async def create_course(self, data: CourseCreate) -> Course: ...

    @abstractmethod
    async def update_course(self, course_id: int, **changes: Any) -> Course | None: ...

    @abstractmethod
    async def delete_course(self, course_id: int) -> bool:
        """Delete the course and its lessons. Returns False if it did not exist."""

    # --- Lessons ---

    @abstractmethod
    async def get_lesson(self, lesson_id: int) -> Lesson | None: ...

    @abstractmethod
    async def list_lessons_by_course(self, course_id: int) -> list[Lesson]:
        """Lessons of a course ordered by ``order_number`` ascending."""

    @abstractmethod
    async def create_lesson(self, data: LessonCreate) -> Lesson: ...

    @abstractmethod
    async def update_lesson(self, lesson_id: int, **changes: Any) -> Lesson | None: ...

    @abstractmethod
    async def delete_lesson(self, lesson_id: int) -> bool: ...

    # --- Enrolments ---

    @abstractmethod
    async def get_user_course(self, user_id: int, course_id: int) -> UserCourse | None: ...

    @abstractmethod
    async def list_user_courses(
        self,
        user_id: int | None = None,
        course_id: int | None = None,
    ) -> list[UserCourse]: ...

    @abstractmethod
    async def create_user_course(self, user_id: int, course_id: int) -> UserCourse: ...

    @abstractmethod
    async def update_user_course(self, user_course_id: int, **changes: Any) -> UserCourse | None: ...

    @abstractmethod
    async def claim_user_course_reward(self, user_course_id: int, amount: float) -> bool:
        """Compare-and-set ``reward_claimed`` from False to True.

        Sets ``reward_amount`` in the same write. Returns False if the reward
        was already claimed, so at most one concurrent caller wins.
        """

    # --- Lesson completions ---

    @abstractmethod
    async def get_user_lesson(self, user_id: int, lesson_id: int) -> UserLesson | None: ...

    @abstractmethod
    async def list_user_lessons_by_course(self, user_id: int, course_id: int) -> list[UserLesson]: ...

    @abstractmethod
    async def create_user_lesson(self, user_id: int, lesson_id: int, course_id: int) -> UserLesson: ...

    @abstractmethod
    async def update_user_lesson(self, user_lesson_id: int, **changes: Any) -> UserLesson | None: ...

    # --- Certificates ---

    @abstractmethod
    async def get_certificate(self, certificate_id: int) -> Certificate | None: ...

    @abstractmethod
    async def get_user_course_certificate(self, user_id: int, course_id: int) -> Certificate | None: ...

    @abstractmethod
    async def list_certificates(self, user_id: int | None = None) -> list[Certificate]: ...

    @abstractmethod
    async def create_certificate(self, data: CertificateCreate) -> Certificate: ...

    # --- Rewards ---

    @abstractmethod
    async def list_rewards(self, user_id: int | None = None) -> list[Reward]: ...

    @abstractmethod
    async def create_reward(self, data: RewardCreate) -> Reward: ...

    # --- Referral tiers ---

    @abstractmethod
    async def get_referral_tier(self, tier: int) -> ReferralTier | None: ...

    @abstractmethod
    async def list_referral_tiers(self) -> list[ReferralTier]:
        """All tiers ordered by ``tier`` ascending."""

    @abstractmethod
    async def create_referral_tier(self, data: ReferralTierCreate) -> ReferralTier: ...

    @abstractmethod
    async def update_referral_tier(self, tier: int, **changes: Any) -> ReferralTier | None: ...


def sort_lessons(lessons: Sequence[Lesson]) -> list[Lesson]:
    """Order lessons by ``order_number``, then id for equal positions."""
    return sorted(lessons, key=lambda lesson: (lesson.order_number, lesson.id))
