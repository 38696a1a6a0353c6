"""
Auth Token Repository

Data access layer for AuthToken model.
Lookups by (purpose, identifier, token hash) and the single used_at write.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_

from launchpad.repositories.base import BaseRepository
from launchpad.models.auth_token import AuthToken


class AuthTokenRepository(BaseRepository[AuthToken]):
    """Repository for AuthToken model."""

    def __init__(self, db: AsyncSession):
        super().__init__(AuthToken, db)

    # =================
    # Find by hash
    # =================
    async def find(
        self,
        purpose: str,
        identifier: str,
        token_hash: str,
    ) -> Optional[AuthToken]:
        """
        Find a token row by purpose, identifier and hash.

        Expiry and use are not filtered here; callers derive the status.
        """
        result = await self.db.execute(
            select(AuthToken).where(
                and_(
                    AuthToken.purpose == purpose,
                    AuthToken.identifier == identifier,
                    AuthToken.token_hash == token_hash,
                )
            ).limit(1)
        )
        return result.scalar_one_or_none()

    # =================
    # Mark token as used
    # =================
    async def mark_used(self, token_id, used_at: datetime) -> bool:
        """
        Set used_at on a token that has not been used yet.

        Returns False when another request got there first.
        """
        result = await self.db.execute(
            update(AuthToken)
            .where(
                and_(
                    AuthToken.id == token_id,
                    AuthToken.used_at.is_(None),
                )
            )
            .values(used_at=used_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
