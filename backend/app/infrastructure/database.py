"""Async PostgreSQL access for the durable conversation log.

The engine is built lazily from settings, so importing models or running
the voice pipeline never opens a connection.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.config import Settings, get_settings

logger = logging.getLogger("db")


class Base(DeclarativeBase):
    """Declarative base for the conversation log models."""


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(settings: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True}
    if settings.database_disable_pooling:
        # TestClient and alembic each run their own event loop
        options["poolclass"] = NullPool
    else:
        options["pool_size"] = 5
        options["max_overflow"] = 10
    return options


def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, creating it on first use."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_async_engine(settings.database_url, **_engine_options(settings))
        logger.info(
            "Database engine created",
            extra={
                "service": "db",
                "metadata": {"database": settings._redact_url(settings.database_url)},
            },
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            expire_on_commit=False,
            autoflush=False,
        )
    return _session_factory


@asynccontextmanager
async def get_session_context() -> AsyncIterator[AsyncSession]:
    """Open a session that commits on success and rolls back on error.

    Usage:
        async with get_session_context() as session:
            log = ConversationLogService(session)
            await log.save_message(conversation_id, "user", "hello")
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_db() -> None:
    """Run ``SELECT 1``; raises when the database is unreachable."""
    async with get_engine().connect() as conn:
        await conn.execute(text("SELECT 1"))


async def init_db() -> bool:
    """Check connectivity at startup.

    The voice pipeline does not need the database, so a failure is logged
    and reported as False instead of aborting startup.
    """
    try:
        await ping_db()
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Database unreachable at startup",
            extra={"service": "db", "error": str(exc)},
        )
        return False
    logger.info("Database connection verified", extra={"service": "db"})
    return True


async def close_db() -> None:
    """Dispose the engine (call on shutdown)."""
    global _engine, _session_factory
    if _engine is None:
        return
    await _engine.dispose()
    _engine = None
    _session_factory = None
    logger.info("Database connections closed", extra={"service": "db"})


__all__ = [
    "Base",
    "close_db",
    "get_engine",
    "get_session_context",
    "get_session_factory",
    "init_db",
    "ping_db",
]
