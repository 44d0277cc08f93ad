"""SQLAlchemy-backed entity store.

One ``SqlStore`` wraps one ``AsyncSession`` (one per request). Every read
re-populates the identity map so conditional ``UPDATE`` statements issued in
the same session are always reflected in returned entities.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel
from sqlalchemy import Select, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tonedu.db.base import Base
from tonedu.db.models import (
    CertificateRow,
    CourseRow,
    LessonRow,
    ReferralTierRow,
    RewardRow,
    UserCourseRow,
    UserLessonRow,
    UserRow,
)
from tonedu.store.base import EntityStore
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

M = TypeVar("M", bound=BaseModel)
R = TypeVar("R", bound=Base)


def _to_entity(entity_cls: type[M], row: Base | None) -> M | None:
    if row is None:
        return None
    return entity_cls.model_validate(row)


class SqlStore(EntityStore):
    """Entity store over an async SQLAlchemy session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        try:
            yield
            await self.session.commit()
        except BaseException:
            await self.session.rollback()
            logger.debug("sql_transaction_rolled_back")
            raise

    # --- helpers ---

    async def _get(self, model: type[R], pk: int) -> R | None:
        return await self.session.get(model, pk, populate_existing=True)

    async def _first(self, stmt: Select[tuple[R]]) -> R | None:
        result = await self.session.execute(stmt.execution_options(populate_existing=True).limit(1))
        return result.scalars().first()

    async def _all(self, stmt: Select[tuple[R]]) -> list[R]:
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def _insert(self, row: R) -> R:
        self.session.add(row)
        await self.session.flush()
        return row

    async def _update(self, model: type[R], pk: int, changes: dict[str, Any]) -> R | None:
        row = await self._get(model, pk)
        if row is None:
            return None
        for field, value in changes.items():
            setattr(row, field, value)
        await self.session.flush()
        return row

    async def _conditional_update(self, stmt: Any) -> bool:
        result = await self.session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount == 1

    # --- Users ---

    async def get_user(self, user_id: int) -> User | None:
        return _to_entity(User, await self._get(UserRow, user_id))

    async def get_user_by_telegram_id(self, telegram_id: str) -> User | None:
        row = await self._first(select(UserRow).where(UserRow.telegram_id == telegram_id))
        return _to_entity(User, row)

    async def get_user_by_username(self, username: str) -> User | None:
        row = await self._first(select(UserRow).where(UserRow.username == username))
        return _to_entity(User, row)

    async def get_user_by_referral_code(self, referral_code: str) -> User | None:
        row = await self._first(select(UserRow).where(UserRow.referral_code == referral_code))
        return _to_entity(User, row)

    async def list_users(self) -> list[User]:
        rows = await self._all(select(UserRow).order_by(UserRow.id))
        return [User.model_validate(row) for row in rows]

    async def create_user(self, data: UserCreate) -> User:
        row = await self._insert(UserRow(**data.model_dump()))
        return User.model_validate(row)

    async def update_user(self, user_id: int, **changes: Any) -> User | None:
        return _to_entity(User, await self._update(UserRow, user_id, changes))

    async def increment_user_balance(self, user_id: int, amount: float) -> User | None:
        await self.session.execute(
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(balance=UserRow.balance + amount)
            .execution_options(synchronize_session=False)
        )
        return await self.get_user(user_id)

    async def increment_referral_count(self, user_id: int) -> User | None:
        await self.session.execute(
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(referral_count=UserRow.referral_count + 1)
            .execution_options(synchronize_session=False)
        )
        return await self.get_user(user_id)

    async def set_referred_by(self, user_id: int, referrer_id: int) -> bool:
        return await self._conditional_update(
            update(UserRow)
            .where(UserRow.id == user_id, UserRow.referred_by.is_(None))
            .values(referred_by=referrer_id)
        )

    # --- Courses ---

    async def get_course(self, course_id: int) -> Course | None:
        return _to_entity(Course, await self._get(CourseRow, course_id))

    async def list_courses(self, active_only: bool = False) -> list[Course]:
        stmt = select(CourseRow).order_by(CourseRow.id)
        if active_only:
            stmt = stmt.where(CourseRow.active.is_(True))
        return [Course.model_validate(row) for row in await self._all(stmt)]

    async def create_course(self, data: CourseCreate) -> Course:
        row = await self._insert(CourseRow(**data.model_dump()))
        return Course.model_validate(row)

    async def update_course(self, course_id: int, **changes: Any) -> Course | None:
        return _to_entity(Course, await self._update(CourseRow, course_id, changes))

    async def delete_course(self, course_id: int) -> bool:
        row = await self._get(CourseRow, course_id)
        if row is None:
            return False
        for lesson in await self._all(select(LessonRow).where(LessonRow.course_id == course_id)):
            await self.session.delete(lesson)
        await self.session.flush()
        await self.session.delete(row)
        await self.session.flush()
        return True

    # --- Lessons ---

    async def get_lesson(self, lesson_id: int) -> Lesson | None:
        return _to_entity(Lesson, await self._get(LessonRow, lesson_id))

    async def list_lessons_by_course(self, course_id: int) -> list[Lesson]:
        rows = await self._all(
            select(LessonRow).where(LessonRow.course_id == course_id).order_by(LessonRow.order_number, LessonRow.id)
        )
        return [Lesson.model_validate(row) for row in rows]

    async def create_lesson(self, data: LessonCreate) -> Lesson:
        row = await self._insert(LessonRow(**data.model_dump()))
        return Lesson.model_validate(row)

    async def update_lesson(self, lesson_id: int, **changes: Any) -> Lesson | None:
        return _to_entity(Lesson, await self._update(LessonRow, lesson_id, changes))

    async def delete_lesson(self, lesson_id: int) -> bool:
        row = await self._get(LessonRow, lesson_id)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True

    # --- Enrolments ---

    async def get_user_course(self, user_id: int, course_id: int) -> UserCourse | None:
        row = await self._first(
            select(UserCourseRow).where(UserCourseRow.user_id == user_id, UserCourseRow.course_id == course_id)
        )
        return _to_entity(UserCourse, row)

    async def list_user_courses(
        self,
        user_id: int | None = None,
        course_id: int | None = None,
    ) -> list[UserCourse]:
        stmt = select(UserCourseRow).order_by(UserCourseRow.id)
        if user_id is not None:
            stmt = stmt.where(UserCourseRow.user_id == user_id)
        if course_id is not None:
            stmt = stmt.where(UserCourseRow.course_id == course_id)
        return [UserCourse.model_validate(row) for row in await self._all(stmt)]

    async def create_user_course(self, user_id: int, course_id: int) -> UserCourse:
        row = await self._insert(UserCourseRow(user_id=user_id, course_id=course_id))
        return UserCourse.model_validate(row)

    async def update_user_course(self, user_course_id: int, **changes: Any) -> UserCourse | None:
        return _to_entity(UserCourse, await self._update(UserCourseRow, user_course_id, changes))

    async def claim_user_course_reward(self, user_course_id: int, amount: float) -> bool:
        return await self._conditional_update(
            update(UserCourseRow)
            .where(UserCourseRow.id == user_course_id, UserCourseRow.reward_claimed.is_(False))
            .values(reward_claimed=True, reward_amount=amount)
        )

    # --- Lesson completions ---

    async def get_user_lesson(self, user_id: int, lesson_id: int) -> UserLesson | None:
        row = await self._first(
            select(UserLessonRow).where(UserLessonRow.user_id == user_id, UserLessonRow.lesson_id == lesson_id)
        )
        return _to_entity(UserLesson, row)

    async def list_user_lessons_by_course(self, user_id: int, course_id: int) -> list[UserLesson]:
        rows = await self._all(
            select(UserLessonRow)
            .where(UserLessonRow.user_id == user_id, UserLessonRow.course_id == course_id)
            .order_by(UserLessonRow.id)
        )
        return [UserLesson.model_validate(row) for row in rows]

    async def create_user_lesson(self, user_id: int, lesson_id: int, course_id: int) -> UserLesson:
        row = await self._insert(UserLessonRow(user_id=user_id, lesson_id=lesson_id, course_id=course_id))
        return UserLesson.model_validate(row)

    async def update_user_lesson(self, user_lesson_id: int, **changes: Any) -> UserLesson | None:
        return _to_entity(UserLesson, await self._update(UserLessonRow, user_lesson_id, changes))

    # --- Certificates ---

    async def get_certificate(self, certificate_id: int) -> Certificate | None:
        return _to_entity(Certificate, await self._get(CertificateRow, certificate_id))

    async def get_user_course_certificate(self, user_id: int, course_id: int) -> Certificate | None:
        row = await self._first(
            select(CertificateRow).where(CertificateRow.user_id == user_id, CertificateRow.course_id == course_id)
        )
        return _to_entity(Certificate, row)

    async def list_certificates(self, user_id: int | None = None) -> list[Certificate]:
        stmt = select(CertificateRow).order_by(CertificateRow.id)
        if user_id is not None:
            stmt = stmt.where(CertificateRow.user_id == user_id)
        return [Certificate.model_validate(row) for row in await self._all(stmt)]

    async def create_certificate(self, data: CertificateCreate) -> Certificate:
        row = await self._insert(CertificateRow(**data.model_dump()))
        return Certificate.model_validate(row)

    # --- Rewards ---

    async def list_rewards(self, user_id: int | None = None) -> list[Reward]:
        stmt = select(RewardRow).order_by(RewardRow.id)
        if user_id is not None:
            stmt = stmt.where(RewardRow.user_id == user_id)
        return [Reward.model_validate(row) for row in await self._all(stmt)]

    async def create_reward(self, data: RewardCreate) -> Reward:
        row = await self._insert(RewardRow(**data.model_dump()))
        return Reward.model_validate(row)

    # --- Referral tiers ---

    async def get_referral_tier(self, tier: int) -> ReferralTier | None:
        row = await self._first(select(ReferralTierRow).where(ReferralTierRow.tier == tier))
        return _to_entity(ReferralTier, row)

    async def list_referral_tiers(self) -> list[ReferralTier]:
        rows = await self._all(select(ReferralTierRow).order_by(ReferralTierRow.tier))
        return [ReferralTier.model_validate(row) for row in rows]

    async def create_referral_tier(self, data: ReferralTierCreate) -> ReferralTier:
        row = await self._insert(ReferralTierRow(**data.model_dump()))
        return ReferralTier.model_validate(row)

    async def update_referral_tier(self, tier: int, **changes: Any) -> ReferralTier | None:
        row = await self._first(select(ReferralTierRow).where(ReferralTierRow.tier == tier))
        if row is None:
            return None
        for field, value in changes.items():
            setattr(row, field, value)
        await self.session.flush()
        return ReferralTier.model_validate(row)
