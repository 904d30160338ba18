"""
Database connection and session management for Postgres.
Uses asyncpg with SQLAlchemy async.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings
from app.errors import StorageError

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Get database URL without sslmode (asyncpg doesn't support it as query param)."""
    url = settings.database_url
    if not url:
        return ""
    if "?sslmode=" in url:
        url = url.split("?sslmode=")[0]
    elif "&sslmode=" in url:
        url = url.replace("&sslmode=require", "").replace("&sslmode=disable", "")
    return url


def create_engine_if_configured() -> Optional[AsyncEngine]:
    """Create async engine only if DATABASE_URL is configured."""
    db_url = get_database_url()
    if not db_url:
        logger.warning("DATABASE_URL not configured. Database features disabled.")
        return None

    options: Dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if not db_url.startswith("sqlite"):
        options.update(pool_size=5, max_overflow=10)
        if settings.database_ssl:
            options["connect_args"] = {"ssl": True}

    return create_async_engine(db_url, **options)


def create_session_maker(bind: Optional[AsyncEngine]) -> Optional[async_sessionmaker]:
    if bind is None:
        return None
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


# Process-wide engine and session factory (None if not configured)
engine = create_engine_if_configured()
async_session_maker = create_session_maker(engine)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Context manager for a database session, committed on clean exit."""
    if not async_session_maker:
        raise StorageError("Database not configured. Set DATABASE_URL environment variable.")

    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get database session."""
    async with get_db_context() as session:
        yield session


async def init_db() -> None:
    """Initialize database tables."""
    if not engine:
        logger.warning("Skipping database initialization - DATABASE_URL not configured")
        return

    # Register models on Base.metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


async def close_db() -> None:
    """Close database connections."""
    if engine:
        await engine.dispose()
