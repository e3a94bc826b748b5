"""
IdeaStore Backend — Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   Creates an async engine with connection pooling and provides a session
       dependency that commits on success and rolls back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Connection Pooling:
    PostgreSQL (asyncpg) uses a queue pool sized from settings, with
    pre-ping and hourly recycling. SQLite (aiosqlite, used by tests and
    local runs) keeps SQLAlchemy's default pool; pool sizing arguments do
    not apply to it.
"""

import logging
from typing import Any, AsyncGenerator, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from ideastore.config import settings
from ideastore.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool options for the configured backend."""
    options: Dict[str, Any] = {
        # SQL echo only in DEBUG
        "echo": settings.log_level == "DEBUG",
    }
    if database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: rows stay readable after the dependency commits
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object between the models, Alembic's
    autogenerate and `create_schema()`.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction (a failing commit is raised
           as StoreUnavailableError)
        4. On error: rolls back, then re-raises for the global handlers
        5. Always: closes the session (returns the connection to the pool)

    Example usage in a route:
        @router.get("/entries")
        async def list_entries(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with async_session_factory() as session:
        try:
            yield session
            try:
                await session.commit()
            except SQLAlchemyError as e:
                logger.error("Database error committing request session: %s", str(e))
                raise StoreUnavailableError(
                    message="Failed to save changes. Please try again later.",
                    context={"error_type": type(e).__name__},
                )
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_schema() -> None:
    """
    What:  Creates missing tables (CREATE TABLE IF NOT EXISTS semantics).
    When:  Application startup, when settings.db_auto_create is enabled.
    """
    # Registers Entry on Base.metadata
    import ideastore.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
