"""
Enrollment Repository

One row per (user, course). Status interpretation lives in the enrollment
service, not here.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from launchpad.repositories.base import BaseRepository
from launchpad.models.enrollment import Enrollment


class EnrollmentRepository(BaseRepository[Enrollment]):
    """Repository for Enrollment model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Enrollment, db)

    async def get(self, user_id, course_id) -> Optional[Enrollment]:
        return await self.db.get(Enrollment, (user_id, course_id))

    async def upsert(
        self,
        user_id,
        course_id,
        status: str,
        source: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> Enrollment:
        """Create or replace the enrollment row for (user, course)."""
        enrollment = await self.get(user_id, course_id)
        if enrollment is None:
            enrollment = Enrollment(user_id=user_id, course_id=course_id)
            self.db.add(enrollment)

        enrollment.status = status
        enrollment.source = source
        enrollment.expires_at = expires_at

        await self.db.commit()
        await self.db.refresh(enrollment)
        return enrollment
