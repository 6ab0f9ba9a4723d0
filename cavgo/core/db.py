"""
Database connection and session management.

Provides the async SQLAlchemy engine, session factory, and a session
context manager for background work outside of requests.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cavgo.core.config import settings

logger = logging.getLogger(__name__)

_async_engine: AsyncEngine | None = None
_async_sessionmaker: async_sessionmaker | None = None


def _engine_kwargs(pool_size: int, max_overflow: int) -> dict[str, Any]:
    if settings.is_sqlite:
        # SQLite has no server-side pool to size.
        return {"echo": False}
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "echo": False,
        "connect_args": {"server_settings": {"timezone": "UTC"}, "timeout": 30},
    }


def create_fresh_async_engine() -> AsyncEngine:
    """Create a fresh async engine without caching.

    Used by maintenance scripts that run on their own event loop.
    """
    url = settings.async_url
    if not url:
        raise RuntimeError("DATABASE_URL_APP is required")
    return create_async_engine(url, **_engine_kwargs(pool_size=5, max_overflow=5))


def get_async_engine() -> AsyncEngine:
    """
    Create and configure the shared async SQLAlchemy engine.

    Returns:
        Configured async SQLAlchemy engine
    """
    global _async_engine

    if _async_engine is not None:
        return _async_engine

    url = settings.async_url
    if not url:
        raise RuntimeError("DATABASE_URL_APP is required")

    _async_engine = create_async_engine(url, **_engine_kwargs(pool_size=20, max_overflow=10))
    logger.info("Created async engine for %s", _async_engine.url.render_as_string())
    return _async_engine


def get_async_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """
    Get or create the async sessionmaker.

    Returns:
        Async sessionmaker factory
    """
    global _async_sessionmaker
    if _async_sessionmaker is not None:
        return _async_sessionmaker

    _async_sessionmaker = async_sessionmaker(
        bind=get_async_engine(),
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )
    return _async_sessionmaker


async def create_all_tables(engine: AsyncEngine | None = None) -> None:
    """Create any missing tables (local development and tests)."""
    from cavgo.db.models import Base

    engine = engine or get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Transactional session for work outside a request.

    Commits on success and rolls back if the block raises.

    Usage:
        async with session_scope() as db:
            booking = await db.get(Booking, booking_id)
    """
    maker = session_maker or get_async_sessionmaker()
    async with maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_async_db_session() -> AsyncIterator[AsyncSession]:
    """
    Async database session dependency for FastAPI endpoints.

    Routes commit explicitly; anything left uncommitted is rolled back when
    the session closes.

    Usage:
        @router.get("/trips")
        async def list_trips(db: AsyncDbSession):
            ...
    """
    session_maker = get_async_sessionmaker()
    async with session_maker() as session:
        yield session
