"""Education API endpoints: course catalogue, lessons and learner progress."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tonedu.dependencies import get_catalogue_service, get_progress_service
from tonedu.education.catalogue_service import CatalogueService
from tonedu.education.progress_service import ProgressService
from tonedu.education.schemas import (
    CourseDetailResponse,
    CourseUpdateRequest,
    LessonCompletionResponse,
    LessonUpdateRequest,
    SuccessResponse,
)
from tonedu.store.entities import Course, CourseCreate, Lesson, LessonCreate, UserCourse

router = APIRouter(prefix="/api/v1", tags=["Education"])


# ---- Courses ----


@router.get("/courses")
async def list_courses(
    active_only: bool = True,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> list[Course]:
    """List courses; inactive courses only when ``active_only=false``."""
    return await svc.list_courses(active_only=active_only)


@router.get("/courses/{course_id}")
async def get_course(
    course_id: int,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> CourseDetailResponse:
    """Course detail with its lessons in order."""
    course, lessons = await svc.get_course_with_lessons(course_id)
    return CourseDetailResponse(**course.model_dump(), lessons=lessons)


@router.post("/courses", status_code=201)
async def create_course(
    body: CourseCreate,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> Course:
    return await svc.create_course(body)


@router.patch("/courses/{course_id}")
async def update_course(
    course_id: int,
    body: CourseUpdateRequest,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> Course:
    return await svc.update_course(course_id, body.model_dump(exclude_unset=True, exclude_none=True))


@router.delete("/courses/{course_id}")
async def delete_course(
    course_id: int,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> SuccessResponse:
    await svc.delete_course(course_id)
    return SuccessResponse()


# ---- Lessons ----


@router.get("/courses/{course_id}/lessons")
async def list_course_lessons(
    course_id: int,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> list[Lesson]:
    return await svc.list_lessons(course_id)


@router.get("/lessons/{lesson_id}")
async def get_lesson(
    lesson_id: int,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> Lesson:
    return await svc.get_lesson(lesson_id)


@router.post("/lessons", status_code=201)
async def create_lesson(
    body: LessonCreate,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> Lesson:
    return await svc.create_lesson(body)


@router.patch("/lessons/{lesson_id}")
async def update_lesson(
    lesson_id: int,
    body: LessonUpdateRequest,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> Lesson:
    return await svc.update_lesson(lesson_id, body.model_dump(exclude_unset=True, exclude_none=True))


@router.delete("/lessons/{lesson_id}")
async def delete_lesson(
    lesson_id: int,
    svc: CatalogueService = Depends(get_catalogue_service),  # noqa: B008
) -> SuccessResponse:
    await svc.delete_lesson(lesson_id)
    return SuccessResponse()


# ---- Progress ----


@router.get("/users/{user_id}/progress")
async def get_user_progress(
    user_id: int,
    svc: ProgressService = Depends(get_progress_service),  # noqa: B008
) -> list[UserCourse]:
    return await svc.get_user_progress(user_id)


@router.post("/users/{user_id}/courses/{course_id}/start")
async def start_course(
    user_id: int,
    course_id: int,
    svc: ProgressService = Depends(get_progress_service),  # noqa: B008
) -> UserCourse:
    return await svc.start_course(user_id, course_id)


@router.post("/users/{user_id}/lessons/{lesson_id}/complete")
async def complete_lesson(
    user_id: int,
    lesson_id: int,
    svc: ProgressService = Depends(get_progress_service),  # noqa: B008
) -> LessonCompletionResponse:
    """Mark a lesson complete and return the refreshed course progress."""
    completion = await svc.complete_lesson(user_id, lesson_id)
    return LessonCompletionResponse(
        user_lesson=completion.user_lesson,
        progress=completion.progress,
        course_completed=completion.course_completed,
    )
