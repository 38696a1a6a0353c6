from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from launchpad.db.database import get_db
from launchpad.schemas.auth import ErrorResponse
from launchpad.schemas.course import (
    CourseOutlineResponse,
    LessonOutline,
    LessonProgressResponse,
    ModuleOutline,
)
from launchpad.schemas.dashboard import DashboardEnrollment
from launchpad.services.course_service import CourseService
from launchpad.services.progress_service import lesson_is_accessible
from launchpad.api.deps import get_current_user
from launchpad.models.user import User

router = APIRouter(tags=["Courses"])

_LESSON_ERRORS = {
    401: {"model": ErrorResponse, "description": "Not authenticated"},
    403: {"model": ErrorResponse, "description": "Lesson locked"},
    404: {"model": ErrorResponse, "description": "Course or lesson not found"},
}


# ============================================================
# Course Outline
# ============================================================

@router.get(
    "/{course_ref}",
    response_model=CourseOutlineResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Course not found"},
    }
)
async def get_course_outline(
    course_ref: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Modules and lessons of a course, in order, each lesson flagged locked
    or not for the caller.
    """
    course_service = CourseService(db)
    course, enrollment, modules, lessons_by_module = await course_service.get_outline(
        current_user, course_ref
    )

    return CourseOutlineResponse(
        id=course.id,
        title=course.title,
        slug=course.slug,
        enrollment=DashboardEnrollment(
            status=enrollment.status,
            source=enrollment.source,
            expires_at=enrollment.expires_at,
        ),
        modules=[
            ModuleOutline(
                id=module.id,
                title=module.title,
                position=module.position,
                lessons=[
                    LessonOutline(
                        id=lesson.id,
                        title=lesson.title,
                        slug=lesson.slug,
                        position=lesson.position,
                        is_free_preview=lesson.is_free_preview,
                        locked=not lesson_is_accessible(lesson, enrollment.status),
                    )
                    for lesson in lessons_by_module.get(module.id, [])
                ],
            )
            for module in modules
        ],
    )


# ============================================================
# Lesson Progress
# ============================================================

@router.post(
    "/{course_ref}/lessons/{lesson_id}/view",
    response_model=LessonProgressResponse,
    responses=_LESSON_ERRORS,
)
async def record_lesson_view(
    course_ref: str,
    lesson_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Record that the caller opened a lesson."""
    course_service = CourseService(db)
    return await course_service.record_view(current_user, course_ref, lesson_id)


@router.post(
    "/{course_ref}/lessons/{lesson_id}/complete",
    response_model=LessonProgressResponse,
    responses=_LESSON_ERRORS,
)
async def complete_lesson(
    course_ref: str,
    lesson_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark a lesson completed for the caller."""
    course_service = CourseService(db)
    return await course_service.complete_lesson(current_user, course_ref, lesson_id)
