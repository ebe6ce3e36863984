"""Async database engine and session management.

This module provides the async SQLAlchemy 2.0 engine configuration and
session factory used by the project store.

Usage:
    from clipflow.database import create_engine_and_session_factory

    engine, session_factory = create_engine_and_session_factory()
    async with session_factory() as session, session.begin():
        session.add(record)
"""

import os

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from clipflow.config import get_database_url
from clipflow.models import Base


def create_engine_and_session_factory(
    database_url: str | None = None,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create the async engine and session factory.

    PostgreSQL gets a connection pool with pre-ping; SQLite (the single-process
    default) uses the driver defaults.

    Args:
        database_url: Override for DATABASE_URL (defaults to config value).

    Returns:
        Tuple of (engine, async_session_factory).
    """
    url = database_url or get_database_url()
    echo = os.getenv("DATABASE_ECHO", "").lower() == "true"

    if url.startswith("postgresql"):
        engine = create_async_engine(
            url,
            pool_size=10,
            max_overflow=5,
            pool_pre_ping=True,
            echo=echo,
        )
    else:
        engine = create_async_engine(url, echo=echo)

    session_factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,  # CRITICAL: prevents attribute expiration after commit
    )
    return engine, session_factory


def create_test_engine(
    database_url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create an async engine for testing.

    Args:
        database_url: Test database URL (defaults to in-memory SQLite).

    Returns:
        Tuple of (engine, async_session_factory) for testing.
    """
    test_engine = create_async_engine(
        database_url,
        echo=False,
    )
    test_session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return test_engine, test_session_factory


async def init_models(engine: AsyncEngine) -> None:
    """Create missing tables (development and tests; production uses alembic)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
