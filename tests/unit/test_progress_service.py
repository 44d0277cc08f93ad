"""Unit tests for lesson completion and course progress."""

import pytest

from tonedu.education.progress_service import ProgressService, compute_progress
from tonedu.errors import NotFoundError
from tonedu.store.entities import LessonCreate


class TestComputeProgress:
    """Percentage rounding."""

    def test_zero_lessons_is_zero(self):
        assert compute_progress(0, 0) == 0

    def test_thirds(self):
        assert compute_progress(1, 3) == 33
        assert compute_progress(2, 3) == 67
        assert compute_progress(3, 3) == 100

    def test_half_rounds_up(self):
        # 1/8 = 12.5%
        assert compute_progress(1, 8) == 13
        # 3/8 = 37.5%
        assert compute_progress(3, 8) == 38

    def test_clamped_to_range(self):
        assert compute_progress(5, 3) == 100
        assert compute_progress(-1, 3) == 0

    @pytest.mark.parametrize("total", [1, 2, 3, 6, 7, 9, 11])
    def test_hundred_only_when_all_done(self, total):
        for k in range(total):
            assert compute_progress(k, total) < 100
        assert compute_progress(total, total) == 100


@pytest.mark.asyncio
class TestCompleteLesson:
    """ProgressService.complete_lesson against the in-memory store."""

    async def test_sequential_progress(self, store, make_user, make_course):
        user = await make_user()
        _, lessons = await make_course(lessons=3)
        svc = ProgressService(store)

        expected = [33, 67, 100]
        for lesson, pct in zip(lessons, expected, strict=True):
            completion = await svc.complete_lesson(user.id, lesson.id)
            assert completion.progress == pct
            user_course = await store.get_user_course(user.id, lesson.course_id)
            assert user_course.progress == pct
            if pct < 100:
                assert user_course.completed_at is None
                assert completion.course_completed is False

        assert completion.course_completed is True
        user_course = await store.get_user_course(user.id, lessons[0].course_id)
        assert user_course.completed_at is not None

    async def test_repeat_completion_is_idempotent(self, store, make_user, make_course):
        user = await make_user()
        course, lessons = await make_course(lessons=4)
        svc = ProgressService(store)

        first = await svc.complete_lesson(user.id, lessons[0].id)
        second = await svc.complete_lesson(user.id, lessons[0].id)

        assert first.progress == second.progress == 25
        assert second.user_lesson.completed_at == first.user_lesson.completed_at
        records = await store.list_user_lessons_by_course(user.id, course.id)
        assert len(records) == 1

    async def test_completed_at_set_once(self, store, make_user, make_course):
        user = await make_user()
        course, lessons = await make_course(lessons=1)
        svc = ProgressService(store)

        await svc.complete_lesson(user.id, lessons[0].id)
        first_completed_at = (await store.get_user_course(user.id, course.id)).completed_at
        await svc.complete_lesson(user.id, lessons[0].id)

        assert (await store.get_user_course(user.id, course.id)).completed_at == first_completed_at

    async def test_completion_implicitly_enrols(self, store, make_user, make_course):
        user = await make_user()
        course, lessons = await make_course(lessons=2)

        assert await store.get_user_course(user.id, course.id) is None
        await ProgressService(store).complete_lesson(user.id, lessons[1].id)

        user_course = await store.get_user_course(user.id, course.id)
        assert user_course is not None
        assert user_course.progress == 50

    async def test_progress_never_decreases_when_lessons_added(self, store, make_user, make_course):
        """A lesson added after completion does not pull progress back down."""
        user = await make_user()
        course, lessons = await make_course(lessons=2)
        svc = ProgressService(store)
        for lesson in lessons:
            await svc.complete_lesson(user.id, lesson.id)

        async with store.transaction():
            await store.create_lesson(LessonCreate(course_id=course.id, title="Bonus", order_number=3))
        await svc.complete_lesson(user.id, lessons[0].id)

        user_course = await store.get_user_course(user.id, course.id)
        assert user_course.progress == 100

    async def test_unknown_lesson(self, store, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError):
            await ProgressService(store).complete_lesson(user.id, 999)

    async def test_unknown_user(self, store, make_course):
        _, lessons = await make_course(lessons=1)
        with pytest.raises(NotFoundError):
            await ProgressService(store).complete_lesson(999, lessons[0].id)
        assert await store.list_user_courses() == []


@pytest.mark.asyncio
class TestStartCourse:
    async def test_start_creates_enrolment(self, store, make_user, make_course):
        user = await make_user()
        course, _ = await make_course()
        user_course = await ProgressService(store).start_course(user.id, course.id)
        assert user_course.progress == 0
        assert user_course.reward_claimed is False

    async def test_start_twice_returns_same_enrolment(self, store, make_user, make_course):
        user = await make_user()
        course, _ = await make_course()
        svc = ProgressService(store)
        first = await svc.start_course(user.id, course.id)
        second = await svc.start_course(user.id, course.id)
        assert first.id == second.id
        assert len(await svc.get_user_progress(user.id)) == 1

    async def test_start_unknown_course(self, store, make_user):
        user = await make_user()
        with pytest.raises(NotFoundError):
            await ProgressService(store).start_course(user.id, 42)

    async def test_course_without_lessons_reports_zero(self, store, make_user, make_course):
        user = await make_user()
        course, _ = await make_course(lessons=0)
        svc = ProgressService(store)
        await svc.start_course(user.id, course.id)
        assert await svc.course_progress(user.id, course.id) == 0


@pytest.mark.asyncio
class TestGetUserProgress:
    async def test_lists_enrolments(self, store, make_user, make_course):
        user = await make_user()
        course, _ = await make_course()
        await ProgressService(store).start_course(user.id, course.id)

        progress = await ProgressService(store).get_user_progress(user.id)
        assert [uc.course_id for uc in progress] == [course.id]

    async def test_user_without_enrolments(self, store, make_user):
        user = await make_user()
        assert await ProgressService(store).get_user_progress(user.id) == []

    async def test_unknown_user(self, store):
        with pytest.raises(NotFoundError):
            await ProgressService(store).get_user_progress(404)
