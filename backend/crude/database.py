"""
Crude — Database Session Management
=====================================

What:  Async SQLAlchemy engine, session factory, declarative base and helpers.
Why:   Centralizes connection logic for the SQLAlchemy entity adapter.
How:   Creates an async engine with connection pooling (non-SQLite URLs) and
       a session factory that SqlAlchemyEntity opens one session from per
       storage operation.
Who:   The app factory (main.py), the health route and SqlAlchemyEntity.
When:  Engine is created at module import; sessions are created on demand.

Connection Pooling Strategy:
    pool_size / max_overflow / pool_pre_ping come from settings.
    SQLite engines use SQLAlchemy's own pool choice; passing pool sizing to
    them raises, so those options are only applied to server databases.
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from crude.config import settings


def _engine_options() -> Dict[str, Any]:
    """Engine keyword arguments appropriate for the configured backend."""
    options: Dict[str, Any] = {
        # Echo SQL in DEBUG mode only; it is noisy
        "echo": settings.log_level == "DEBUG",
    }
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: records returned by the entity adapter are read
# after their session has closed (templates, JSON serialization)
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model mounted behind a SqlAlchemyEntity inherits from this class so
    init_models() can create its table.
    """
    pass


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def init_models() -> None:
    """
    What:  Creates tables for every model registered on Base.
    When:  Application startup (lifespan) and test setup.
    Note:  Idempotent; existing tables are left untouched.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
