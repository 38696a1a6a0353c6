"""
Lesson Progress Repository

Read and upsert per-(user, lesson) progress rows.
"""

from datetime import datetime
from typing import Dict, Sequence
from uuid import UUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from launchpad.repositories.base import BaseRepository
from launchpad.models.lesson_progress import UserLessonProgress


class ProgressRepository(BaseRepository[UserLessonProgress]):
    """Repository for UserLessonProgress model."""

    def __init__(self, db: AsyncSession):
        super().__init__(UserLessonProgress, db)

    async def get_for_lessons(
        self,
        user_id,
        lesson_ids: Sequence[UUID],
    ) -> Dict[UUID, UserLessonProgress]:
        """Progress rows of a user for the given lessons, keyed by lesson id."""
        if not lesson_ids:
            return {}

        result = await self.db.execute(
            select(UserLessonProgress).where(
                UserLessonProgress.user_id == user_id,
                UserLessonProgress.lesson_id.in_(list(lesson_ids)),
            )
        )
        return {row.lesson_id: row for row in result.scalars().all()}

    async def _upsert(self, user_id, lesson_id, **values) -> UserLessonProgress:
        row = await self.db.get(UserLessonProgress, (user_id, lesson_id))
        if row is None:
            row = UserLessonProgress(user_id=user_id, lesson_id=lesson_id, **values)
            self.db.add(row)
            try:
                await self.db.commit()
            except IntegrityError:
                # Another request inserted the row first; update that one
                await self.db.rollback()
                row = await self.db.get(UserLessonProgress, (user_id, lesson_id))
                if row is None:
                    raise
            else:
                await self.db.refresh(row)
                return row

        for key, value in values.items():
            setattr(row, key, value)
        await self.db.commit()
        await self.db.refresh(row)
        return row

    async def record_view(self, user_id, lesson_id, now: datetime) -> UserLessonProgress:
        """Upsert last_viewed_at for a lesson."""
        return await self._upsert(user_id, lesson_id, last_viewed_at=now)

    async def mark_completed(self, user_id, lesson_id, now: datetime) -> UserLessonProgress:
        """Upsert completed_at and last_viewed_at for a lesson."""
        return await self._upsert(user_id, lesson_id, completed_at=now, last_viewed_at=now)
