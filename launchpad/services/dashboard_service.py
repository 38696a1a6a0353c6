"""
Dashboard Service

Assembles the learner dashboard: resolves the course, the caller's enrollment
and progress, then shapes one response payload.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from launchpad.core.config import settings
from launchpad.models import User
from launchpad.repositories.progress_repo import ProgressRepository
from launchpad.schemas.dashboard import (
    DashboardCourse,
    DashboardCTAs,
    DashboardEnrollment,
    DashboardMessages,
    DashboardProgress,
    DashboardResponse,
    DashboardUser,
    ModuleProgressResponse,
    NextLesson,
    ResumeLesson,
    UnlockCTA,
)
from launchpad.services.course_service import CourseService
from launchpad.services.enrollment_service import EnrollmentService
from launchpad.services.progress_service import ProgressSummary, aggregate_progress
from launchpad.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.course_service = CourseService(db)
        self.enrollment_service = EnrollmentService(db)
        self.progress_repo = ProgressRepository(db)

    async def get_dashboard(self, user: User, course_ref: Optional[str] = None) -> DashboardResponse:
        """
        Build the dashboard for a user.

        Args:
            user: Authenticated user
            course_ref: Course id or slug; None selects the default course

        Raises:
            NotFoundError: course_ref given but unknown
        """
        course = await self.course_service.get_course_or_default(course_ref)

        # One AsyncSession: these reads run one after another
        enrollment = await self.enrollment_service.resolve(user, course.id, now=utcnow())
        modules, lessons_by_module = await self.course_service.load_catalog(course)
        lesson_ids = [
            lesson.id
            for lessons in lessons_by_module.values()
            for lesson in lessons
        ]
        progress_by_lesson = await self.progress_repo.get_for_lessons(user.id, lesson_ids)

        summary = aggregate_progress(
            modules,
            lessons_by_module,
            progress_by_lesson,
            enrollment.status,
        )
        logger.debug(
            f"Dashboard for user {user.id} on course {course.id}: "
            f"{enrollment.status}, {summary.overall_percent}%"
        )

        return DashboardResponse(
            user=DashboardUser(
                id=user.id,
                name=user.full_name,
                email=user.email,
                email_verified=user.is_verified,
            ),
            course=DashboardCourse(id=course.id, title=course.title, slug=course.slug),
            enrollment=DashboardEnrollment(
                status=enrollment.status,
                source=enrollment.source,
                expires_at=enrollment.expires_at,
            ),
            progress=self._progress_payload(summary),
            resume=self._resume_payload(summary),
            ctas=None if enrollment.has_access else self._ctas(),
            messages=DashboardMessages(verify_email_required=not user.is_verified),
        )

    @staticmethod
    def _progress_payload(summary: ProgressSummary) -> DashboardProgress:
        modules = []
        for module in summary.modules:
            next_lesson = None
            if module.next_lesson is not None:
                next_lesson = NextLesson(
                    lesson_id=module.next_lesson.lesson_id,
                    title=module.next_lesson.title,
                    slug=module.next_lesson.slug,
                    locked=module.next_lesson.locked,
                )
            modules.append(
                ModuleProgressResponse(
                    module_id=module.module_id,
                    title=module.title,
                    percent=module.percent,
                    completed=module.completed,
                    total=module.total,
                    next_lesson=next_lesson,
                )
            )

        return DashboardProgress(
            overall_percent=summary.overall_percent,
            last_activity_at=summary.last_activity_at,
            modules=modules,
        )

    @staticmethod
    def _resume_payload(summary: ProgressSummary) -> Optional[ResumeLesson]:
        if summary.resume is None:
            return None
        return ResumeLesson(
            lesson_id=summary.resume.lesson_id,
            title=summary.resume.title,
            slug=summary.resume.slug,
            module_id=summary.resume.module_id,
        )

    @staticmethod
    def _ctas() -> DashboardCTAs:
        return DashboardCTAs(
            unlock=UnlockCTA(pricing_url=settings.PRICING_URL, plan=settings.UNLOCK_PLAN_NAME),
            free_preview_url=settings.FREE_PREVIEW_URL,
        )
