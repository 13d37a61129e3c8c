from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from eventdesk.core.config import settings

# -----------------------------
# Async engine (FastAPI)
# -----------------------------
# Built on first use so pure modules can be imported without a database.
_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        if not settings.DATABASE_URL_ASYNC:
            raise RuntimeError("DATABASE_URL_ASYNC is not set. Set it in your environment/.env.")
        # Use CLEAN URL to avoid asyncpg errors with sslmode/channel_binding query params.
        _engine = create_async_engine(
            settings.DATABASE_URL_ASYNC_CLEAN,
            echo=False,
            future=True,
            pool_pre_ping=True,  # detects dead connections before using them
            pool_recycle=300,    # recycle connections periodically (seconds)
        )
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
            autocommit=False,
        )
    return _sessionmaker


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides one AsyncSession per request.
    Always closes the session after the request completes.
    """
    async with get_sessionmaker()() as session:
        try:
            yield session
        finally:
            await session.close()
