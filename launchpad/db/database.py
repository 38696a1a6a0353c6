"""
Database Connection Module

Async SQLAlchemy engine, session factory and the declarative Base shared by
every model.

Usage in FastAPI endpoints:
    @router.get("/")
    async def my_endpoint(db: AsyncSession = Depends(get_db)):
        ...
"""

import logging
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from launchpad.core.config import settings

logger = logging.getLogger(__name__)


# ============================================================
# Engine
# ============================================================
engine_kwargs = {
    "echo": settings.SQLALCHEMY_ECHO,
    "pool_pre_ping": True,
}

# Pool sizing only applies to pooled drivers (not SQLite)
if settings.DB_POOL_MIN_SIZE is not None:
    engine_kwargs["pool_size"] = settings.DB_POOL_MIN_SIZE
if settings.DB_POOL_MAX_SIZE is not None:
    engine_kwargs["max_overflow"] = max(
        0, settings.DB_POOL_MAX_SIZE - (settings.DB_POOL_MIN_SIZE or 5)
    )

engine = create_async_engine(settings.DATABASE_URL, **engine_kwargs)


# ============================================================
# Session Factory
# ============================================================
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that yields one session per request.

    Rolls back whatever the request left uncommitted.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ============================================================
# Health Check
# ============================================================
async def check_db_connection() -> bool:
    """
    Check if the database is reachable.

    Returns:
        True if a trivial query succeeds, False otherwise
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
