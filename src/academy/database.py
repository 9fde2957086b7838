"""Async engine and session factory shared by the whole app."""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from academy.config import get_settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None

_NOT_READY = "Database not initialized. Call init_db() first."


def _sqlite_foreign_keys_on(dbapi_connection: Any, _record: Any) -> None:  # noqa: ANN401
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_engine(url: str) -> AsyncEngine:
    """
    PostgreSQL gets a sized, pre-pinged pool.

    SQLite (tests, local runs) keeps SQLAlchemy's default pool and turns on
    foreign keys for every connection so ``ON DELETE CASCADE`` works there too.
    """
    if make_url(url).get_backend_name() == "sqlite":
        engine = create_async_engine(url)
        event.listen(engine.sync_engine, "connect", _sqlite_foreign_keys_on)
        return engine

    pool_size = get_settings().database_pool_size
    return create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=pool_size // 2,
        pool_pre_ping=True,
    )


async def init_db(url: str) -> None:
    global _engine, _session_factory  # noqa: PLW0603
    _engine = _build_engine(url)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)


async def close_db() -> None:
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError(_NOT_READY)
    return _engine


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request, closed afterwards."""
    if _session_factory is None:
        raise RuntimeError(_NOT_READY)
    async with _session_factory() as session:
        yield session
