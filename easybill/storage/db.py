# ==== DATABASE CONNECTION AND SESSION MANAGEMENT ==== #

"""
Database connection and session management for EasyBill.

This module provides async SQLAlchemy connectivity and session lifecycle
management. Every session is built on ``TenantSession`` so the tenant row
filter and the tenant stamping listener apply to all ORM work.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy.ext.asyncio import (
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
    AsyncEngine
)
from sqlalchemy.orm import declarative_base

from easybill.observability.metrics import db_connections_active
from easybill.settings import settings
from easybill.storage.tenant_filter import TenantSession


# ==== SQLALCHEMY CONFIGURATION ==== #

# SQLAlchemy base for model definitions
Base = declarative_base()

# Global engine and session factory instances
engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


# ==== DATABASE INITIALIZATION ==== #


def _normalize_url(db_url: str) -> str:
    """Force the asyncpg driver for PostgreSQL URLs."""
    if db_url.startswith("postgresql+asyncpg://"):
        return db_url
    db_url = db_url.replace("postgresql+psycopg://", "postgresql+asyncpg://")
    db_url = db_url.replace("postgresql://", "postgresql+asyncpg://")

    # asyncpg spells the SSL flag differently from libpq
    if "sslmode=require" in db_url:
        db_url = db_url.replace("sslmode=require", "ssl=require")
    return db_url


def init_database(database_url: str | None = None, **engine_kwargs: Any) -> None:
    """
    Initialize database engine and session factory.

    Args:
        database_url: Overrides ``settings.DATABASE_URL`` (tests use sqlite)
        **engine_kwargs: Extra ``create_async_engine`` arguments
    """
    global engine, SessionLocal

    if engine is not None:
        return

    db_url = _normalize_url(database_url or settings.DATABASE_URL)

    if db_url.startswith("postgresql+asyncpg://"):
        engine_kwargs.setdefault("connect_args", {
            "server_settings": {
                "application_name": settings.SERVICE_NAME,
                "timezone": "UTC"
            }
        })
        engine_kwargs.setdefault("pool_pre_ping", True)

    engine = create_async_engine(
        db_url,
        echo=settings.DATABASE_ECHO,
        **engine_kwargs,
    )

    SessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        sync_session_class=TenantSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session with automatic commit, rollback and cleanup.

    Used by background flows; request handlers use ``get_db_session``.

    Yields:
        AsyncSession: Database session
    """
    if SessionLocal is None:
        init_database()

    async with SessionLocal() as session:
        try:
            db_connections_active.inc()
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            db_connections_active.dec()
            await session.close()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Yields:
        AsyncSession: Database session for request handling
    """
    async with get_session() as session:
        yield session


async def create_all() -> None:
    """Create every table. Only for tests and local bootstrap; prod uses alembic."""
    if engine is None:
        init_database()

    # Models must be imported so they register on Base.metadata
    from easybill.storage import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_database() -> None:
    """Close database connections on shutdown."""
    global engine, SessionLocal
    if engine is not None:
        await engine.dispose()
        engine = None
        SessionLocal = None
