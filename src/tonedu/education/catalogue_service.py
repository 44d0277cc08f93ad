"""Course and lesson catalogue management."""

from __future__ import annotations

from typing import Any

import structlog

from tonedu.errors import BusinessRuleViolation, InvalidInputError, NotFoundError
from tonedu.store.base import EntityStore
from tonedu.store.entities import Course, CourseCreate, Lesson, LessonCreate

logger = structlog.get_logger()


class CatalogueService:
    """CRUD over courses and lessons with reward-range and enrolment checks."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    # --- Courses ---

    async def list_courses(self, active_only: bool = True) -> list[Course]:
        return await self.store.list_courses(active_only=active_only)

    async def get_course(self, course_id: int) -> Course:
        course = await self.store.get_course(course_id)
        if course is None:
            raise NotFoundError("Course not found")
        return course

    async def get_course_with_lessons(self, course_id: int) -> tuple[Course, list[Lesson]]:
        course = await self.get_course(course_id)
        return course, await self.store.list_lessons_by_course(course_id)

    async def create_course(self, data: CourseCreate) -> Course:
        async with self.store.transaction():
            course = await self.store.create_course(data)
        logger.info("course_created", course_id=course.id, title=course.title)
        return course

    async def update_course(self, course_id: int, changes: dict[str, Any]) -> Course:
        course = await self.get_course(course_id)
        min_reward = changes.get("min_reward", course.min_reward)
        max_reward = changes.get("max_reward", course.max_reward)
        if min_reward < 0 or min_reward > max_reward:
            raise InvalidInputError("Reward range must satisfy 0 <= min_reward <= max_reward")

        async with self.store.transaction():
            updated = await self.store.update_course(course_id, **changes)
        if updated is None:
            raise NotFoundError("Course not found")
        return updated

    async def delete_course(self, course_id: int) -> None:
        """Delete a course and its lessons.

        Courses with enrolments are kept so progress, rewards and
        certificates stay consistent; deactivate them instead.
        """
        await self.get_course(course_id)
        if await self.store.list_user_courses(course_id=course_id):
            raise BusinessRuleViolation("Course has enrolments; deactivate it instead")
        async with self.store.transaction():
            await self.store.delete_course(course_id)
        logger.info("course_deleted", course_id=course_id)

    # --- Lessons ---

    async def list_lessons(self, course_id: int) -> list[Lesson]:
        await self.get_course(course_id)
        return await self.store.list_lessons_by_course(course_id)

    async def get_lesson(self, lesson_id: int) -> Lesson:
        lesson = await self.store.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found")
        return lesson

    async def create_lesson(self, data: LessonCreate) -> Lesson:
        await self.get_course(data.course_id)
        async with self.store.transaction():
            lesson = await self.store.create_lesson(data)
        logger.info("lesson_created", lesson_id=lesson.id, course_id=lesson.course_id)
        return lesson

    async def update_lesson(self, lesson_id: int, changes: dict[str, Any]) -> Lesson:
        lesson = await self.get_lesson(lesson_id)
        if "course_id" in changes and changes["course_id"] != lesson.course_id:
            raise InvalidInputError("Lessons cannot move between courses")
        async with self.store.transaction():
            updated = await self.store.update_lesson(lesson_id, **changes)
        if updated is None:
            raise NotFoundError("Lesson not found")
        return updated

    async def delete_lesson(self, lesson_id: int) -> None:
        lesson = await self.get_lesson(lesson_id)
        if await self.store.list_user_courses(course_id=lesson.course_id):
            raise BusinessRuleViolation("Course has enrolments; lessons cannot be removed")
        async with self.store.transaction():
            await self.store.delete_lesson(lesson_id)
        logger.info("lesson_deleted", lesson_id=lesson_id)
