"""
Course Repository

Catalog reads: courses, their modules and lessons, always in position order.
"""

import uuid
from typing import Dict, List, Optional, Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from launchpad.repositories.base import BaseRepository
from launchpad.models.course import Course, CourseModule, Lesson


class CourseRepository(BaseRepository[Course]):
    """Repository for Course, CourseModule and Lesson models."""

    def __init__(self, db: AsyncSession):
        super().__init__(Course, db)

    # =================
    # Course lookups
    # =================
    async def get_by_slug(self, slug: str) -> Optional[Course]:
        result = await self.db.execute(
            select(Course).where(Course.slug == slug)
        )
        return result.scalar_one_or_none()

    async def get_by_ref(self, ref: str) -> Optional[Course]:
        """Get a course by id, falling back to slug."""
        try:
            course_id = uuid.UUID(str(ref))
        except ValueError:
            course_id = None

        if course_id is not None:
            course = await self.get_by_id(course_id)
            if course:
                return course

        return await self.get_by_slug(ref)

    async def get_first(self) -> Optional[Course]:
        result = await self.db.execute(
            select(Course).order_by(Course.created_at, Course.slug).limit(1)
        )
        return result.scalar_one_or_none()

    # =================
    # Modules and lessons
    # =================
    async def get_modules(self, course_id) -> List[CourseModule]:
        """All modules of a course ordered by position."""
        result = await self.db.execute(
            select(CourseModule)
            .where(CourseModule.course_id == course_id)
            .order_by(CourseModule.position)
        )
        return list(result.scalars().all())

    async def get_lessons_by_module(
        self,
        module_ids: Sequence[uuid.UUID],
    ) -> Dict[uuid.UUID, List[Lesson]]:
        """Lessons grouped by module id, each group ordered by position."""
        grouped: Dict[uuid.UUID, List[Lesson]] = {module_id: [] for module_id in module_ids}
        if not module_ids:
            return grouped

        result = await self.db.execute(
            select(Lesson)
            .where(Lesson.module_id.in_(list(module_ids)))
            .order_by(Lesson.module_id, Lesson.position)
        )
        for lesson in result.scalars().all():
            grouped.setdefault(lesson.module_id, []).append(lesson)

        for lessons in grouped.values():
            lessons.sort(key=lambda lesson: lesson.position)
        return grouped

    async def get_lesson_in_course(self, course_id, lesson_id) -> Optional[Lesson]:
        """Get a lesson only if it belongs to one of the course's modules."""
        result = await self.db.execute(
            select(Lesson)
            .join(CourseModule, Lesson.module_id == CourseModule.id)
            .where(
                Lesson.id == lesson_id,
                CourseModule.course_id == course_id,
            )
        )
        return result.scalar_one_or_none()

    # =================
    # Seeding
    # =================
    async def seed_default_course(self, slug: str, title: str) -> Course:
        """
        Create a course with one module holding one free-preview lesson.
        """
        course = Course(title=title, slug=slug)
        module = CourseModule(course=course, title="Getting Started", position=0)
        Lesson(
            module=module,
            title="Course introduction",
            slug="course-introduction",
            position=0,
            is_free_preview=True,
        )
        self.db.add(course)
        await self.db.commit()
        await self.db.refresh(course)
        return course
