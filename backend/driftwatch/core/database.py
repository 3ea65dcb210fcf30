"""
Database engine and session management.

Async SQLAlchemy engine shared by the API, services and Celery tasks.
"""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from driftwatch.core.config import settings

Base = declarative_base()


def _engine_kwargs(url: str) -> dict:
    kwargs: dict = {"echo": settings.DB_ECHO, "future": True}
    if not url.startswith("sqlite"):
        kwargs["pool_size"] = settings.DB_POOL_SIZE
        kwargs["max_overflow"] = settings.DB_MAX_OVERFLOW
        kwargs["pool_pre_ping"] = True
    return kwargs


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL)
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a session that commits on success."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create tables if missing and seed default settings."""
    # Register all models on the metadata
    import driftwatch.models  # noqa: F401
    from driftwatch.services.settings_service import SettingsService

    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(bind=target, expire_on_commit=False)
    async with session_factory() as session:
        await SettingsService(session).seed_defaults()
        await session.commit()


async def close_db() -> None:
    """Dispose of the engine connection pool."""
    await engine.dispose()
