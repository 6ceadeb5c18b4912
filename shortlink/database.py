"""Database engine and session management for the shortlink store.

This module provides SQLAlchemy async engine setup and database lifecycle
operations using PostgreSQL as the backend. Engines are built from Settings
and owned by the service manager rather than created at import time.

How to Use
===========
**Step 1 — Build the engine on startup**::
    engine = build_engine(settings)
    sessions = build_session_factory(engine)
    await init_db(engine)  # Creates tables

**Step 2 — Hand the session factory to the store**::
    store = SQLShortLinkStore(sessions)

**Step 3 — Cleanup on shutdown**::
    await close_db(engine)

Key Behaviours
===============
- Connection pooling is configured for production workloads.
- SQL statements are echoed when APP_ENV is "development".
- Tables are created automatically on application startup.
- Health checks run ``SELECT 1`` under a caller-supplied deadline.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    build_engine():  Creates the async engine from settings.
    build_session_factory():  Creates the async session factory.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from shortlink.config import Settings

__all__ = ["Base", "build_engine", "build_session_factory", "init_db", "close_db"]


class Base(DeclarativeBase):
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.DATABASE_URL,
        echo=(settings.APP_ENV == "development"),
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    # Register the models on Base.metadata before create_all.
    import shortlink.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
