# backend/app/db/session.py
from __future__ import annotations

from collections.abc import AsyncGenerator
from typing import Any

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

logger = structlog.get_logger(__name__)


def engine_options(url: str) -> dict[str, Any]:
    """
    Pool settings for the configured backend.

    SQLite (tests, local scratch databases) runs on SQLAlchemy's default
    static/null pools, which reject the queue pool sizing arguments.
    """
    options: dict[str, Any] = {"echo": settings.DB_ECHO}
    if make_url(url).get_backend_name() == "sqlite":
        return options

    options.update(
        pool_pre_ping=True,  # detects dead connections before using them
        pool_recycle=300,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )
    return options


# sslmode/channel_binding are stripped: asyncpg rejects them as connect kwargs.
DATABASE_URL_ASYNC = settings.DATABASE_URL_ASYNC_CLEAN

engine: AsyncEngine = create_async_engine(DATABASE_URL_ASYNC, **engine_options(DATABASE_URL_ASYNC))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One AsyncSession per request. Work left uncommitted when the handler
    raises is rolled back before the session is closed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as exc:
            logger.warning("db.session_rollback", error=type(exc).__name__)
            await session.rollback()
            raise
        finally:
            await session.close()
