"""
Redis Connection Module

Async Redis connection management. Redis backs the shared dashboard rate
limiter when RATE_LIMIT_BACKEND=redis, so several API worker processes
count requests against one window instead of one window each.
"""

import logging
from typing import Optional

from redis.asyncio import Redis, ConnectionPool

from launchpad.core.config import settings

# ============================================================
# Logging Setup
# ============================================================
logger = logging.getLogger(__name__)

# ============================================================
# Redis Connection Pool
# ============================================================

# Process-wide pool, created on first use
_redis_pool: Optional[ConnectionPool] = None


def get_redis_pool() -> ConnectionPool:
    """
    Shared connection pool for the rate limiter and health checks.

    Built lazily on first use, so the memory backend never touches Redis.
    """
    global _redis_pool

    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=10,      # Max simultaneous connections
            decode_responses=True,
        )
        logger.info(f"Redis connection pool created: {settings.REDIS_URL}")

    return _redis_pool


def get_redis() -> Redis:
    """Get a Redis client bound to the shared pool."""
    return Redis(connection_pool=get_redis_pool())


async def close_redis_pool():
    """
    Close Redis connection pool during app shutdown.

    Called from the FastAPI lifespan on shutdown.
    """
    global _redis_pool

    if _redis_pool is not None:
        await _redis_pool.disconnect()
        _redis_pool = None
        logger.info("Redis connection pool closed")


# ============================================================
# Health Check
# ============================================================

async def check_redis_connection() -> bool:
    """
    Check if Redis is reachable.

    Returns:
        True if Redis responds to PING, False otherwise
    """
    try:
        response = await get_redis().ping()
        logger.info("Redis health check: OK")
        return bool(response)
    except Exception as e:
        logger.error(f"Redis health check failed: {e}")
        return False
