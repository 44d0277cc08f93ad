"""In-memory entity store.

Each table is an insertion-ordered dict keyed by a monotonically increasing
integer id. Transactions are serialised by a single ``asyncio.Lock`` and
roll back by restoring a snapshot of every table.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

import structlog

from tonedu.store.base import EntityStore, sort_lessons
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

logger = structlog.get_logger()

E = TypeVar("E", User, Course, Lesson, UserCourse, UserLesson, Certificate, Reward, ReferralTier)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Table(Generic[E]):
    """Ordered rows plus the id counter for one entity type."""

    def __init__(self) -> None:
        self.rows: dict[int, E] = {}
        self.next_id = 1

    def allocate_id(self) -> int:
        row_id = self.next_id
        self.next_id += 1
        return row_id

    def insert(self, row: E) -> E:
        self.rows[row.id] = row
        return row

    def get(self, row_id: int) -> E | None:
        return self.rows.get(row_id)

    def find(self, predicate: Callable[[E], bool]) -> E | None:
        return next((row for row in self.rows.values() if predicate(row)), None)

    def filter(self, predicate: Callable[[E], bool] | None = None) -> list[E]:
        if predicate is None:
            return list(self.rows.values())
        return [row for row in self.rows.values() if predicate(row)]

    def update(self, row_id: int, changes: dict[str, Any]) -> E | None:
        row = self.rows.get(row_id)
        if row is None:
            return None
        updated = row.model_copy(update=changes)
        self.rows[row_id] = updated
        return updated

    def delete(self, row_id: int) -> bool:
        return self.rows.pop(row_id, None) is not None

    def snapshot(self) -> tuple[dict[int, E], int]:
        return dict(self.rows), self.next_id

    def restore(self, state: tuple[dict[int, E], int]) -> None:
        self.rows, self.next_id = state


class InMemoryStore(EntityStore):
    """Dict-backed store, safe for concurrent tasks on one event loop.

    Transactions are serialised by one lock. Reads do not take it, so they
    can observe writes of a transaction that has not finished yet (read
    uncommitted); decisions that must not act on such writes belong inside
    ``transaction()``.
    """

    def __init__(self) -> None:
        self.users: _Table[User] = _Table()
        self.courses: _Table[Course] = _Table()
        self.lessons: _Table[Lesson] = _Table()
        self.user_courses: _Table[UserCourse] = _Table()
        self.user_lessons: _Table[UserLesson] = _Table()
        self.certificates: _Table[Certificate] = _Table()
        self.rewards: _Table[Reward] = _Table()
        self.referral_tiers: _Table[ReferralTier] = _Table()
        self._lock = asyncio.Lock()

    def _tables(self) -> list[_Table[Any]]:
        return [
            self.users,
            self.courses,
            self.lessons,
            self.user_courses,
            self.user_lessons,
            self.certificates,
            self.rewards,
            self.referral_tiers,
        ]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            snapshots = [table.snapshot() for table in self._tables()]
            try:
                yield
            except BaseException:
                for table, state in zip(self._tables(), snapshots, strict=True):
                    table.restore(state)
                logger.debug("memory_transaction_rolled_back")
                raise

    # --- Users ---

    async def get_user(self, user_id: int) -> User | None:
        return self.users.get(user_id)

    async def get_user_by_telegram_id(self, telegram_id: str) -> User | None:
        return self.users.find(lambda u: u.telegram_id == telegram_id)

    async def get_user_by_username(self, username: str) -> User | None:
        return self.users.find(lambda u: u.username == username)

    async def get_user_by_referral_code(self, referral_code: str) -> User | None:
        return self.users.find(lambda u: u.referral_code == referral_code)

    async def list_users(self) -> list[User]:
        return self.users.filter()

    async def create_user(self, data: UserCreate) -> User:
        clash = self.users.find(
            lambda u: u.telegram_id == data.telegram_id
            or u.username == data.username
            or u.referral_code == data.referral_code
        )
        if clash is not None:
            msg = f"User {clash.id} already holds this telegram id, username or referral code"
            raise ValueError(msg)
        user = User(id=self.users.allocate_id(), created_at=_utcnow(), **data.model_dump())
        return self.users.insert(user)

    async def update_user(self, user_id: int, **changes: Any) -> User | None:
        return self.users.update(user_id, changes)

    async def increment_user_balance(self, user_id: int, amount: float) -> User | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        return self.users.update(user_id, {"balance": user.balance + amount})

    async def increment_referral_count(self, user_id: int) -> User | None:
        user = self.users.get(user_id)
        if user is None:
            return None
        return self.users.update(user_id, {"referral_count": user.referral_count + 1})

    async def set_referred_by(self, user_id: int, referrer_id: int) -> bool:
        user = self.users.get(user_id)
        if user is None or user.referred_by is not None:
            return False
        self.users.update(user_id, {"referred_by": referrer_id})
        return True

    # --- Courses ---

    async def get_course(self, course_id: int) -> Course | None:
        return self.courses.get(course_id)

    async def list_courses(self, active_only: bool = False) -> list[Course]:
        if active_only:
            return self.courses.filter(lambda c: c.active)
        return self.courses.filter()

    async def create_course(self, data: CourseCreate) -> Course:
        course = Course(id=self.courses.allocate_id(), created_at=_utcnow(), **data.model_dump())
        return self.courses.insert(course)

    async def update_course(self, course_id: int, **changes: Any) -> Course | None:
        return self.courses.update(course_id, changes)

    async def delete_course(self, course_id: int) -> bool:
        if self.courses.get(course_id) is None:
            return False
        for row in self.lessons.filter(lambda lesson: lesson.course_id == course_id):
            self.lessons.delete(row.id)
        return self.courses.delete(course_id)

    # --- Lessons ---

    async def get_lesson(self, lesson_id: int) -> Lesson | None:
        return self.lessons.get(lesson_id)

    async def list_lessons_by_course(self, course_id: int) -> list[Lesson]:
        return sort_lessons(self.lessons.filter(lambda lesson: lesson.course_id == course_id))

    async def create_lesson(self, data: LessonCreate) -> Lesson:
        lesson = Lesson(id=self.lessons.allocate_id(), created_at=_utcnow(), **data.model_dump())
        return self.lessons.insert(lesson)

    async def update_lesson(self, lesson_id: int, **changes: Any) -> Lesson | None:
        return self.lessons.update(lesson_id, changes)

    async def delete_lesson(self, lesson_id: int) -> bool:
        return self.lessons.delete(lesson_id)

    # --- Enrolments ---

    async def get_user_course(self, user_id: int, course_id: int) -> UserCourse | None:
        return self.user_courses.find(lambda uc: uc.user_id == user_id and uc.course_id == course_id)

    async def list_user_courses(
        self,
        user_id: int | None = None,
        course_id: int | None = None,
    ) -> list[UserCourse]:
        return self.user_courses.filter(
            lambda uc: (user_id is None or uc.user_id == user_id)
            and (course_id is None or uc.course_id == course_id)
        )

    async def create_user_course(self, user_id: int, course_id: int) -> UserCourse:
        if await self.get_user_course(user_id, course_id) is not None:
            msg = f"User {user_id} is already enrolled in course {course_id}"
            raise ValueError(msg)
        user_course = UserCourse(
            id=self.user_courses.allocate_id(),
            user_id=user_id,
            course_id=course_id,
            started_at=_utcnow(),
        )
        return self.user_courses.insert(user_course)

    async def update_user_course(self, user_course_id: int, **changes: Any) -> UserCourse | None:
        return self.user_courses.update(user_course_id, changes)

    async def claim_user_course_reward(self, user_course_id: int, amount: float) -> bool:
        user_course = self.user_courses.get(user_course_id)
        if user_course is None or user_course.reward_claimed:
            return False
        self.user_courses.update(user_course_id, {"reward_claimed": True, "reward_amount": amount})
        return True

    # --- Lesson completions ---

    async def get_user_lesson(self, user_id: int, lesson_id: int) -> UserLesson | None:
        return self.user_lessons.find(lambda ul: ul.user_id == user_id and ul.lesson_id == lesson_id)

    async def list_user_lessons_by_course(self, user_id: int, course_id: int) -> list[UserLesson]:
        return self.user_lessons.filter(lambda ul: ul.user_id == user_id and ul.course_id == course_id)

    async def create_user_lesson(self, user_id: int, lesson_id: int, course_id: int) -> UserLesson:
        if await self.get_user_lesson(user_id, lesson_id) is not None:
            msg = f"User {user_id} already has a record for lesson {lesson_id}"
            raise ValueError(msg)
        user_lesson = UserLesson(
            id=self.user_lessons.allocate_id(),
            user_id=user_id,
            lesson_id=lesson_id,
            course_id=course_id,
        )
        return self.user_lessons.insert(user_lesson)

    async def update_user_lesson(self, user_lesson_id: int, **changes: Any) -> UserLesson | None:
        return self.user_lessons.update(user_lesson_id, changes)

    # --- Certificates ---

    async def get_certificate(self, certificate_id: int) -> Certificate | None:
        return self.certificates.get(certificate_id)

    async def get_user_course_certificate(self, user_id: int, course_id: int) -> Certificate | None:
        return self.certificates.find(lambda c: c.user_id == user_id and c.course_id == course_id)

    async def list_certificates(self, user_id: int | None = None) -> list[Certificate]:
        if user_id is None:
            return self.certificates.filter()
        return self.certificates.filter(lambda c: c.user_id == user_id)

    async def create_certificate(self, data: CertificateCreate) -> Certificate:
        if await self.get_user_course_certificate(data.user_id, data.course_id) is not None:
            msg = f"Certificate for user {data.user_id} and course {data.course_id} already exists"
            raise ValueError(msg)
        certificate = Certificate(id=self.certificates.allocate_id(), **data.model_dump())
        return self.certificates.insert(certificate)

    # --- Rewards ---

    async def list_rewards(self, user_id: int | None = None) -> list[Reward]:
        if user_id is None:
            return self.rewards.filter()
        return self.rewards.filter(lambda r: r.user_id == user_id)

    async def create_reward(self, data: RewardCreate) -> Reward:
        reward = Reward(id=self.rewards.allocate_id(), created_at=_utcnow(), **data.model_dump())
        return self.rewards.insert(reward)

    # --- Referral tiers ---

    async def get_referral_tier(self, tier: int) -> ReferralTier | None:
        return self.referral_tiers.find(lambda t: t.tier == tier)

    async def list_referral_tiers(self) -> list[ReferralTier]:
        return sorted(self.referral_tiers.filter(), key=lambda t: t.tier)

    async def create_referral_tier(self, data: ReferralTierCreate) -> ReferralTier:
        if await self.get_referral_tier(data.tier) is not None:
            msg = f"Referral tier {data.tier} already exists"
            raise ValueError(msg)
        tier = ReferralTier(id=self.referral_tiers.allocate_id(), **data.model_dump())
        return self.referral_tiers.insert(tier)

    async def update_referral_tier(self, tier: int, **changes: Any) -> ReferralTier | None:
        row = await self.get_referral_tier(tier)
        if row is None:
            return None
        return self.referral_tiers.update(row.id, changes)
