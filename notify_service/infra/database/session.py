"""Async database engine and session management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from notify_service.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


def create_engine_from_settings() -> AsyncEngine:
    """Build the async engine from DB_ settings.

    SQLite (development and tests) does not accept pool sizing arguments.
    """
    db_settings = get_db_settings()
    app_settings = get_app_settings()

    kwargs: dict[str, Any] = {"echo": db_settings.echo or app_settings.debug}
    if not db_settings.is_sqlite:
        kwargs.update(
            pool_size=db_settings.pool_size,
            max_overflow=db_settings.max_overflow,
            pool_timeout=db_settings.pool_timeout,
            pool_recycle=db_settings.pool_recycle,
            pool_pre_ping=db_settings.pool_pre_ping,
        )
    return create_async_engine(db_settings.get_sqlalchemy_url(), **kwargs)


engine = create_engine_from_settings()

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield a session, rolling back on error and always closing it.

    Example:
        async with get_async_session() as session:
            await seed_categories(session)
            await session.commit()
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def check_database_connection() -> bool:
    """Return True when a trivial query succeeds."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database connectivity check failed")
        return False
    return True


async def close_database() -> None:
    """Dispose the engine's connection pool."""
    await engine.dispose()
    logger.info("Database connections closed")
