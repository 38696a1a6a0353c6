"""
Course Service

Course lookup (explicit reference or the default course), the per-user
course outline, and lesson view/complete tracking with free-preview gating.
"""

import logging
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from launchpad.core.config import settings
from launchpad.core.exceptions import LessonLockedError, NotFoundError
from launchpad.models import Course, CourseModule, Lesson, User, UserLessonProgress
from launchpad.repositories.course_repo import CourseRepository
from launchpad.repositories.progress_repo import ProgressRepository
from launchpad.services.enrollment_service import EnrollmentResolution, EnrollmentService
from launchpad.services.progress_service import lesson_is_accessible
from launchpad.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.course_repo = CourseRepository(db)
        self.progress_repo = ProgressRepository(db)
        self.enrollment_service = EnrollmentService(db)

    async def get_course(self, course_ref: str) -> Course:
        """
        Get a course by id or slug.

        Raises:
            NotFoundError: no such course
        """
        course = await self.course_repo.get_by_ref(course_ref)
        if not course:
            raise NotFoundError("Course not found")
        return course

    async def get_course_or_default(self, course_ref: Optional[str] = None) -> Course:
        """
        Resolve the target course for a request.

        An explicit reference must exist. Without one the first course is
        used, and an empty catalog gets the default course seeded.
        """
        if course_ref:
            return await self.get_course(course_ref)

        course = await self.course_repo.get_first()
        if course:
            return course

        logger.info(f"Catalog empty; seeding default course '{settings.DEFAULT_COURSE_SLUG}'")
        return await self.course_repo.seed_default_course(
            slug=settings.DEFAULT_COURSE_SLUG,
            title=settings.DEFAULT_COURSE_TITLE,
        )

    async def load_catalog(
        self,
        course: Course,
    ) -> Tuple[List[CourseModule], Dict[UUID, List[Lesson]]]:
        """Modules in position order and their lessons in position order."""
        modules = await self.course_repo.get_modules(course.id)
        lessons_by_module = await self.course_repo.get_lessons_by_module(
            [module.id for module in modules]
        )
        return modules, lessons_by_module

    async def get_outline(
        self,
        user: User,
        course_ref: str,
    ) -> Tuple[Course, EnrollmentResolution, List[CourseModule], Dict[UUID, List[Lesson]]]:
        """Course, the caller's enrollment, and the catalog for the outline."""
        course = await self.get_course(course_ref)
        enrollment = await self.enrollment_service.resolve(user, course.id)
        modules, lessons_by_module = await self.load_catalog(course)
        return course, enrollment, modules, lessons_by_module

    # ============================================================
    # Lesson tracking
    # ============================================================
    async def record_view(self, user: User, course_ref: str, lesson_id: UUID) -> UserLessonProgress:
        lesson = await self._get_accessible_lesson(user, course_ref, lesson_id)
        return await self.progress_repo.record_view(user.id, lesson.id, utcnow())

    async def complete_lesson(self, user: User, course_ref: str, lesson_id: UUID) -> UserLessonProgress:
        lesson = await self._get_accessible_lesson(user, course_ref, lesson_id)
        progress = await self.progress_repo.mark_completed(user.id, lesson.id, utcnow())
        logger.info(f"User {progress.user_id} completed lesson {progress.lesson_id}")
        return progress

    async def _get_accessible_lesson(self, user: User, course_ref: str, lesson_id: UUID) -> Lesson:
        """
        Raises:
            NotFoundError: unknown course, or lesson outside the course
            LessonLockedError: lesson not reachable with the caller's enrollment
        """
        course = await self.get_course(course_ref)
        lesson = await self.course_repo.get_lesson_in_course(course.id, lesson_id)
        if not lesson:
            raise NotFoundError("Lesson not found")

        enrollment = await self.enrollment_service.resolve(user, course.id)
        if not lesson_is_accessible(lesson, enrollment.status):
            raise LessonLockedError("Enroll to unlock this lesson")

        return lesson
