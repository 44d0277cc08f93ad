"""Progress engine: lesson completion tracking and course progress.

Course progress is always derived from completion records, never
incremented, so repeating a completion cannot inflate it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from tonedu.errors import NotFoundError
from tonedu.store.base import EntityStore
from tonedu.store.entities import UserCourse, UserLesson

logger = structlog.get_logger()

COURSE_COMPLETE = 100


def compute_progress(completed: int, total: int) -> int:
    """Completion percentage rounded half-up, 0 for a course without lessons.

    Integer arithmetic keeps x.5 cases exact (1 of 8 lessons is 13%).
    """
    if total <= 0:
        return 0
    completed = max(0, min(completed, total))
    return (200 * completed + total) // (2 * total)


@dataclass(frozen=True)
class LessonCompletion:
    user_lesson: UserLesson
    progress: int
    course_completed: bool


class ProgressService:
    """Derives UserCourse progress from UserLesson completion records."""

    def __init__(self, store: EntityStore) -> None:
        self.store = store

    async def start_course(self, user_id: int, course_id: int) -> UserCourse:
        """Enrol a user in a course. Returns the existing enrolment if present."""
        if await self.store.get_user(user_id) is None:
            raise NotFoundError("User not found")
        if await self.store.get_course(course_id) is None:
            raise NotFoundError("Course not found")

        async with self.store.transaction():
            user_course = await self.store.get_user_course(user_id, course_id)
            if user_course is None:
                user_course = await self.store.create_user_course(user_id, course_id)
                logger.info("course_started", user_id=user_id, course_id=course_id)
        return user_course

    async def get_user_progress(self, user_id: int) -> list[UserCourse]:
        """All enrolments of a user."""
        if await self.store.get_user(user_id) is None:
            raise NotFoundError("User not found")
        return await self.store.list_user_courses(user_id=user_id)

    async def course_progress(self, user_id: int, course_id: int) -> int:
        """Recompute the completion percentage of one course for one user."""
        lessons = await self.store.list_lessons_by_course(course_id)
        lesson_ids = {lesson.id for lesson in lessons}
        completions = await self.store.list_user_lessons_by_course(user_id, course_id)
        completed = sum(1 for ul in completions if ul.completed and ul.lesson_id in lesson_ids)
        return compute_progress(completed, len(lessons))

    async def complete_lesson(self, user_id: int, lesson_id: int) -> LessonCompletion:
        """Mark a lesson complete and refresh the owning course's progress.

        Idempotent: completing a lesson twice keeps the first completion
        time and leaves progress unchanged. Progress never decreases and
        ``completed_at`` is set once, when progress first reaches 100.
        """
        lesson = await self.store.get_lesson(lesson_id)
        if lesson is None:
            raise NotFoundError("Lesson not found")
        if await self.store.get_user(user_id) is None:
            raise NotFoundError("User not found")
        course_id = lesson.course_id

        async with self.store.transaction():
            now = datetime.now(timezone.utc)

            user_lesson = await self.store.get_user_lesson(user_id, lesson_id)
            if user_lesson is None:
                user_lesson = await self.store.create_user_lesson(user_id, lesson_id, course_id)
            already_completed = user_lesson.completed
            if not already_completed:
                user_lesson = await self.store.update_user_lesson(
                    user_lesson.id, completed=True, completed_at=now
                ) or user_lesson

            user_course = await self.store.get_user_course(user_id, course_id)
            if user_course is None:
                user_course = await self.store.create_user_course(user_id, course_id)

            progress = max(await self.course_progress(user_id, course_id), user_course.progress)
            changes: dict[str, object] = {}
            if progress != user_course.progress:
                changes["progress"] = progress
            newly_completed = progress == COURSE_COMPLETE and user_course.completed_at is None
            if newly_completed:
                changes["completed_at"] = now
            if changes:
                await self.store.update_user_course(user_course.id, **changes)

        if not already_completed:
            logger.info(
                "lesson_completed",
                user_id=user_id,
                lesson_id=lesson_id,
                course_id=course_id,
                progress=progress,
            )
        if newly_completed:
            logger.info("course_completed", user_id=user_id, course_id=course_id)

        return LessonCompletion(
            user_lesson=user_lesson,
            progress=progress,
            course_completed=progress == COURSE_COMPLETE,
        )
