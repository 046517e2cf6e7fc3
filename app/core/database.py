"""Async SQLAlchemy 2.0 database setup.

The engine is process-wide state: created on application startup via
``init_engine`` and released on shutdown via ``dispose_engine``. Callers
receive sessions through ``get_db`` or ``get_session_maker``.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings

_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all models."""

    pass


def init_engine() -> AsyncEngine:
    """Create the process-wide async engine if it does not exist yet."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(
            settings.database_url,
            echo=settings.debug,
            pool_pre_ping=True,
        )
    return _engine


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it lazily."""
    return init_engine()


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the session maker bound to the process-wide engine."""
    global _session_maker
    if _session_maker is None:
        _session_maker = async_sessionmaker(
            init_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_maker


async def dispose_engine() -> None:
    """Dispose the engine and drop pooled connections (shutdown hook)."""
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions.

    Yields:
        AsyncSession: Database session that auto-commits on success.
    """
    session_maker = get_session_maker()
    async with session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
