"""
config/database.py
Database wiring for the marketplace: one async engine, one session factory
and the declarative base every model in shared/models/models.py extends.

PostgreSQL (asyncpg) in deployments; tests and local runs point
DATABASE_URL at SQLite (aiosqlite).
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config.settings import settings


def _engine_options() -> dict:
    options = {"echo": settings.DEBUG}
    if settings.DATABASE_URL.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,
        pool_recycle=3600,
    )
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options())

# Procedures and services read attributes after commit
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for work outside a request (the Celery follow-up sweep).
    Commits what the caller left pending; rolls back if the block raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; overridden with the test database in tests/conftest.py."""
    async with get_db_context() as session:
        yield session


async def init_db() -> None:
    """Create missing tables on startup. Schema changes beyond that need a migration."""
    import shared.models.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    await engine.dispose()
