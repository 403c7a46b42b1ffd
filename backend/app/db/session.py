from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings

engine = create_async_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    expire_on_commit=False,
    autoflush=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; handlers commit, anything raised rolls back."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


@lru_cache
def make_sync_session() -> sessionmaker:
    """Session factory for Celery tasks, which run outside the event loop.

    Built on first use so that importing a worker module does not need psycopg2,
    then reused for the lifetime of the worker process.
    """
    sync_engine = create_engine(settings.DATABASE_URL_SYNC, pool_pre_ping=True, pool_size=5)
    return sessionmaker(bind=sync_engine, expire_on_commit=False)
