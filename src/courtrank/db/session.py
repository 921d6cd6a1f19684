# src/courtrank/db/session.py

"""Database session management."""
import logging
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from courtrank.config import settings

logger = logging.getLogger(__name__)

def _create_engine():
    """Create the async engine with appropriate configuration.

    SQLite has no server-side pool; concurrent writers (ingestion,
    resets, the scheduler) instead wait on the file lock for up to
    ``db_busy_timeout`` seconds. Other databases get pool settings.
    """
    url = settings.database_url

    if url.startswith("sqlite"):
        return create_async_engine(
            url,
            echo=settings.db_echo,
            connect_args={"timeout": settings.db_busy_timeout},
        )

    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        pool_recycle=settings.db_pool_recycle,
        echo=settings.db_echo,
    )


engine = _create_engine()

# expire_on_commit=False: entries stay readable after commit; version
# races are detected at flush time, not by reloading.
AsyncSessionLocal = async_sessionmaker(
    bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request.

    Anything still pending when the request fails is rolled back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            logger.error(
                "Request failed, rolling back session",
                extra={"error": type(e).__name__},
            )
            await session.rollback()
            raise
