"""Request/response schemas for course, lesson and progress endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from tonedu.store.entities import Course, Lesson, UserLesson


class CourseUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    level: str | None = None
    duration: str | None = None
    thumbnail: str | None = None
    min_reward: float | None = Field(default=None, ge=0)
    max_reward: float | None = Field(default=None, ge=0)
    active: bool | None = None


class LessonUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    content: str | None = None
    duration: str | None = None
    order_number: int | None = Field(default=None, ge=0)


class CourseDetailResponse(Course):
    lessons: list[Lesson]


class LessonCompletionResponse(BaseModel):
    user_lesson: UserLesson
    progress: int
    course_completed: bool


class SuccessResponse(BaseModel):
    success: bool = True
