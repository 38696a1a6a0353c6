"""
Token Store

Issues and consumes purpose-scoped, single-use secrets (email verification,
password reset). Only SHA-256 hashes are persisted; the raw secret goes out by
email and is never logged.

Lifecycle:
    issued --(consume)--> consumed      terminal
    issued --(time)-----> expired       terminal, derived at read time

Every consume failure raises the same InvalidTokenError so a caller cannot
tell "not found" from "expired" from "already used".
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from launchpad.core.exceptions import InvalidTokenError
from launchpad.core.security import generate_token, hash_token, normalize_email
from launchpad.models.auth_token import (
    AuthToken,
    PURPOSE_EMAIL_VERIFICATION,
    PURPOSE_PASSWORD_RESET,
    TOKEN_PURPOSES,
)
from launchpad.models.user import User
from launchpad.repositories.auth_token_repo import AuthTokenRepository
from launchpad.repositories.user_repo import UserRepository
from launchpad.utils.datetime_utils import as_utc, utcnow

logger = logging.getLogger(__name__)

VERIFICATION_TTL = timedelta(hours=24)
RESET_TTL = timedelta(hours=1)

TOKEN_TTLS = {
    PURPOSE_EMAIL_VERIFICATION: VERIFICATION_TTL,
    PURPOSE_PASSWORD_RESET: RESET_TTL,
}

STATUS_VALID = "valid"
STATUS_CONSUMED = "consumed"
STATUS_EXPIRED = "expired"


def token_status(token: AuthToken, now: datetime) -> str:
    """Derive a token's state; it is never stored."""
    if token.used_at is not None:
        return STATUS_CONSUMED
    if as_utc(now) >= as_utc(token.expires_at):
        return STATUS_EXPIRED
    return STATUS_VALID


class TokenStore:
    """Issue and consume single-use auth tokens."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.token_repo = AuthTokenRepository(db)
        self.user_repo = UserRepository(db)

    # ============================================================
    # Issue
    # ============================================================

    async def issue(
        self,
        purpose: str,
        identifier: str,
        user_id,
        ttl: Optional[timedelta] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """
        Store a new token and return its raw secret.

        Staged in the current unit of work; the caller commits.
        """
        if purpose not in TOKEN_PURPOSES:
            raise ValueError(f"Unknown token purpose: {purpose}")

        now = now or utcnow()
        raw_secret = generate_token()

        await self.token_repo.add(
            purpose=purpose,
            identifier=normalize_email(identifier),
            token_hash=hash_token(raw_secret),
            expires_at=now + (ttl or TOKEN_TTLS[purpose]),
            user_id=user_id,
        )

        logger.info(f"Issued {purpose} token for user {user_id}")
        return raw_secret

    # ============================================================
    # Consume
    # ============================================================

    async def consume(
        self,
        purpose: str,
        identifier: str,
        raw_secret: str,
        now: Optional[datetime] = None,
    ) -> User:
        """
        Mark a valid token used and return its user.

        The used_at write is staged, not committed: the caller commits it
        together with whatever the token authorizes (verifying the email,
        rewriting the password).

        Raises:
            InvalidTokenError: for any unknown, expired or used token
        """
        now = now or utcnow()

        if not raw_secret or not identifier:
            raise InvalidTokenError()

        token = await self.token_repo.find(
            purpose=purpose,
            identifier=normalize_email(identifier),
            token_hash=hash_token(raw_secret),
        )

        if token is None:
            logger.info(f"Rejected {purpose} token: not found")
            raise InvalidTokenError()

        status = token_status(token, now)
        if status != STATUS_VALID:
            logger.info(f"Rejected {purpose} token {token.id}: {status}")
            raise InvalidTokenError()

        if token.user_id is None:
            logger.info(f"Rejected {purpose} token {token.id}: user removed")
            raise InvalidTokenError()

        # Conditional write: a concurrent consumer of the same token loses here
        if not await self.token_repo.mark_used(token.id, now):
            logger.info(f"Rejected {purpose} token {token.id}: consumed concurrently")
            raise InvalidTokenError()

        user = await self.user_repo.get_by_id(token.user_id)
        if user is None:
            raise InvalidTokenError()

        logger.info(f"Consumed {purpose} token {token.id} for user {user.id}")
        return user
