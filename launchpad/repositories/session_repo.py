"""
Session Repository

Data access layer for server-side login sessions.
"""

from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import delete

from launchpad.repositories.base import BaseRepository
from launchpad.models.session import Session


class SessionRepository(BaseRepository[Session]):
    """Repository for Session model."""

    def __init__(self, db: AsyncSession):
        super().__init__(Session, db)

    async def add_session(self, user_id, expires_at: datetime) -> Session:
        """Stage a new session. The caller commits."""
        return await self.add(user_id=user_id, expires_at=expires_at)

    async def delete_session(self, session_id) -> None:
        """Delete one session. The caller commits."""
        await self.db.execute(
            delete(Session).where(Session.id == session_id)
        )

    async def delete_user_sessions(self, user_id) -> int:
        """Delete every session of a user. The caller commits."""
        result = await self.db.execute(
            delete(Session).where(Session.user_id == user_id)
        )
        return result.rowcount or 0
