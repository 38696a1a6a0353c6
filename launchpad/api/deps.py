from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional, Tuple
import logging

from launchpad.db.database import get_db
from launchpad.db.redis import get_redis
from launchpad.models import User, Session
from launchpad.core.config import settings
from launchpad.core.exceptions import RateLimitError, UnauthorizedError
from launchpad.core.rate_limit import InMemoryRateLimiter, RateLimiter, RedisRateLimiter
from launchpad.services.auth_service import AuthService

logger = logging.getLogger(__name__)

# Security scheme for Swagger UI; missing credentials become our own 401 body
security = HTTPBearer(auto_error=False)

# =====================================================
# Get Current user
# =====================================================
async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Tuple[User, Session]:
    """
    Dependency that validates the bearer token and returns (user, session).

    Raises:
        UnauthorizedError: token missing, invalid, or its session is gone
    """
    if credentials is None:
        raise UnauthorizedError()

    auth_service = AuthService(db)
    return await auth_service.get_current_identity(credentials.credentials)


async def get_current_user(
    identity: Tuple[User, Session] = Depends(get_current_identity)
) -> User:
    user, _ = identity
    return user


# =====================================================
# Rate limiting
# =====================================================
_dashboard_limiter: Optional[RateLimiter] = None


def get_dashboard_rate_limiter() -> RateLimiter:
    """
    Limiter shared by every dashboard request of this process.

    'memory' keeps the window in process; 'redis' shares it across workers.
    """
    global _dashboard_limiter
    if _dashboard_limiter is None:
        limit = settings.DASHBOARD_RATE_LIMIT_PER_MINUTE
        if settings.RATE_LIMIT_BACKEND == "redis":
            _dashboard_limiter = RedisRateLimiter(get_redis(), limit=limit, window_seconds=60)
        else:
            _dashboard_limiter = InMemoryRateLimiter(limit=limit, window_seconds=60)
    return _dashboard_limiter


async def enforce_dashboard_rate_limit(
    current_user: User = Depends(get_current_user),
    limiter: RateLimiter = Depends(get_dashboard_rate_limiter),
) -> User:
    """
    Authenticate first, then count the request against the user's window.

    Raises:
        RateLimitError: over the per-minute limit
    """
    if not await limiter.check(f"dashboard:{current_user.id}"):
        logger.warning(f"Dashboard rate limit exceeded for user {current_user.id}")
        raise RateLimitError()
    return current_user
