"""
Async engine, session factory and session scopes
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from app.core.config import settings


def engine_options(database_url: str) -> dict:
    """Pool options for a database URL; SQLite takes no pool sizing."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_timeout": 30,
    }


async_engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **engine_options(settings.database_url),
)

# Objects stay readable after commit; services return them to the routes
AsyncSessionLocal = async_sessionmaker(
    async_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for FastAPI dependencies.

    Services commit their own work; whatever is still open when the request
    fails is rolled back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Session for Celery jobs and scripts, outside any request."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
