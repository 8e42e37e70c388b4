"""Database engine, connection pool and schema lifecycle for the link store.

This module provides the SQLAlchemy async engine setup and the database
lifecycle operations. The engine's pool is the only shared mutable resource
in the service: it is sized by ``MAX_POOL_SIZE`` and never overflows.

Flow Diagram — Pooled Connection
================================
::
    ┌─────────────┐
    │  Gateway    │
    │  request    │
    └──────┬──────┘
           ▼
    ┌─────────────┐   pool empty for
    │ engine.     │── POOL_TIMEOUT ──► TimeoutError
    │ connect()   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ One store   │
    │ operation   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Checked back│
    │ in (always) │
    └─────────────┘

How to Use
===========
**Step 1 — Build and initialize on startup**::
    engine = build_engine(settings)
    await init_db(engine)  # Creates tables

**Step 2 — Borrow a connection**::
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))

**Step 3 — Cleanup on shutdown**::
    await close_db(engine)

Key Behaviours
===============
- At most ``MAX_POOL_SIZE`` connections are checked out at any time.
- Waiting for a free connection is bounded by ``POOL_TIMEOUT_SECONDS``.
- Stale connections are detected with a pre-ping before use.
- Tables are created automatically on application startup.

Classes:
    Base:  SQLAlchemy declarative base for all models.

Functions:
    build_engine():  Creates the pooled async engine.
    init_db():  Creates all tables on startup.
    close_db():  Disposes the engine on shutdown.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import AsyncAdaptedQueuePool

from shortlinks.config import Settings

__all__ = ["Base", "build_engine", "close_db", "init_db"]


class Base(DeclarativeBase):
    pass


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=settings.MAX_POOL_SIZE,
        max_overflow=0,
        pool_timeout=settings.POOL_TIMEOUT_SECONDS,
        pool_pre_ping=True,
    )


async def init_db(engine: AsyncEngine) -> None:
    # Register the mapped tables on Base.metadata before creating them.
    from shortlinks import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(engine: AsyncEngine) -> None:
    await engine.dispose()
