"""
OptSolv Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, FastAPI dependency and the
       transaction scope used by the pipeline's independent writes.
How:   Creates an async engine with connection pooling. Request handlers get a
       session that auto-commits on success and rolls back on error. The
       pipeline opens one short `session_scope()` per write so a failed
       best-effort write never poisons the others.
Who:   Routes (via Depends), the storage gateway and the pipeline orchestrator.

Connection Pooling (PostgreSQL):
    pool_size=20, max_overflow=10 → at most 30 connections
    pool_pre_ping validates connections before use
    pool_recycle=3600 recycles connections every hour
SQLite URLs (tests, local experiments) use the driver's default pool.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from optsolv.config import settings


def utcnow() -> datetime:
    """Timezone-aware current time; every timestamp column stores UTC."""
    return datetime.now(timezone.utc)


# ── Engine Configuration ──────────────────────────────────────────────────
def build_engine(database_url: str) -> AsyncEngine:
    """Create the async engine, applying pool settings only where the dialect has a queue pool."""
    kwargs: Dict[str, Any] = {
        # Echo SQL only in DEBUG mode
        "echo": settings.log_level == "DEBUG",
    }
    if not database_url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(database_url, **kwargs)


engine = build_engine(settings.database_url)

# expire_on_commit=False: attributes stay readable after commit, which the
# pipeline relies on when it reports the rows it just saved
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object, which Alembic reads for autogenerate.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back and re-raises for the global error handler
        5. Always: closes the session (returns connection to pool)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def session_scope(
    factory: Optional[async_sessionmaker] = None,
) -> AsyncGenerator[AsyncSession, None]:
    """
    One self-contained transaction outside the request lifecycle.

    Used by the storage gateway and the pipeline orchestrator: each stage's
    write commits on its own, so a later failure does not roll back earlier
    results (extracted text survives a failed classification).

    Example:
        async with session_scope() as session:
            await DocumentRepository(session).set_extracted_text(doc_id, user_id, text)
    """
    factory = factory or async_session_factory
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Close all pooled connections. Called from the application lifespan on shutdown."""
    await engine.dispose()
