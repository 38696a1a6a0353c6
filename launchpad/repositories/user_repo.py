"""
User Repository

Data access layer for User model.
All user-related database operations.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from launchpad.repositories.base import BaseRepository
from launchpad.models import User
from launchpad.core.security import normalize_email


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    # =================
    # Get by email
    # =================
    async def get_by_email(self, email: str) -> Optional[User]:
        """Get a user by email address (case-insensitive)."""
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    # =================
    # Create user
    # =================
    async def add_user(
        self,
        email: str,
        password_hash: Optional[str],
        full_name: Optional[str] = None,
    ) -> User:
        """Stage a new, unverified user. The caller commits."""
        return await self.add(
            email=normalize_email(email),
            password_hash=password_hash,
            full_name=full_name,
            email_verified=None,
        )

    # =================
    # Update password
    # =================
    async def set_password_hash(self, user_id, password_hash: str) -> None:
        """Replace a user's password hash. The caller commits."""
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(password_hash=password_hash)
        )
