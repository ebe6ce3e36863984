"""Tests for database connection and session management.

Tests the async database engine configuration, session factory,
and table creation used by the project store.
"""

import pytest
from sqlalchemy import inspect, select, text
from sqlalchemy.ext.asyncio import async_sessionmaker

from clipflow.database import create_engine_and_session_factory, create_test_engine, init_models
from clipflow.models import ProjectRecord


@pytest.mark.asyncio
async def test_create_test_engine_creates_working_connection():
    """Test that create_test_engine creates a working async engine."""
    engine, session_factory = create_test_engine()

    async with session_factory() as session:
        result = await session.execute(text("SELECT 1"))
        assert result.scalar() == 1

    await engine.dispose()


@pytest.mark.asyncio
async def test_session_expire_on_commit_is_false():
    """Records stay readable after commit without another query."""
    engine, session_factory = create_engine_and_session_factory("sqlite+aiosqlite:///:memory:")

    async with session_factory() as session:
        assert session.sync_session.expire_on_commit is False

    await engine.dispose()


@pytest.mark.asyncio
async def test_init_models_creates_projects_table(async_engine):
    """Test that init_models creates the projects table with its indexes."""
    async with async_engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        indexes = await conn.run_sync(
            lambda sync_conn: {ix["name"] for ix in inspect(sync_conn).get_indexes("projects")}
        )

    assert "projects" in tables
    assert {"ix_projects_status", "ix_projects_created_at"} <= indexes


@pytest.mark.asyncio
async def test_init_models_is_idempotent(async_engine):
    """Running init_models on an existing schema is a no-op."""
    await init_models(async_engine)


@pytest.mark.asyncio
async def test_snapshot_column_round_trips_json(async_engine):
    """Test that the JSON snapshot column stores nested structures."""
    session_factory = async_sessionmaker(bind=async_engine, expire_on_commit=False)

    async with session_factory() as session, session.begin():
        session.add(
            ProjectRecord(
                id="proj_json",
                name="JSON",
                status="draft",
                snapshot={"clips": [{"index": 0, "generatedImages": []}]},
            )
        )

    async with session_factory() as session:
        record = (
            await session.execute(select(ProjectRecord).where(ProjectRecord.id == "proj_json"))
        ).scalar_one()

    assert record.snapshot["clips"][0]["index"] == 0
    assert record.created_at is not None
    assert repr(record) == "<ProjectRecord(id='proj_json', name='JSON', status='draft')>"
