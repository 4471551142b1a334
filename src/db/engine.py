"""Async database engine, session factory, and lifespan management.

Uses SQLAlchemy 2.0 async with asyncpg driver for PostgreSQL.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.config import settings

logger = logging.getLogger(__name__)

# ── Async PostgreSQL engine ──────────────────────────────────────────

engine: AsyncEngine = create_async_engine(
    settings.db.database_url,
    echo=settings.log_level == "DEBUG",
    pool_size=settings.db.pool_size,
    max_overflow=settings.db.max_overflow,
    pool_pre_ping=True,
    pool_recycle=3600,
)

# ── Session factory ──────────────────────────────────────────────────

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for FastAPI — yields an async DB session.

    Commits when the request handler returns, rolls back on any exception
    so a rejected client record or application never leaves a partial write.

    Usage:
        @router.get("/example")
        async def handler(session: AsyncSession = Depends(get_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Lifespan helpers ─────────────────────────────────────────────────


async def init_db() -> None:
    """Open the pool and, outside production, create missing tables.

    Production schemas come from the Alembic migrations only.
    """
    # Registers every model on Base.metadata
    import src.models  # noqa: F401
    from src.models.base import Base

    async with engine.begin() as conn:
        if settings.is_production:
            await conn.execute(text("SELECT 1"))
        else:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))


async def ping() -> bool:
    """True when PostgreSQL answers a trivial query; used by /health."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database ping failed")
        return False
    return True


async def close_db() -> None:
    await engine.dispose()
    logger.info("Database pool disposed")


@contextlib.asynccontextmanager
async def db_lifespan() -> AsyncGenerator[None, None]:
    """Database lifecycle for the FastAPI lifespan: init on enter, dispose on exit."""
    await init_db()
    try:
        yield
    finally:
        await close_db()
