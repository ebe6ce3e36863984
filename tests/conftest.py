"""Shared pytest fixtures for pipeline and database testing.

This module provides reusable fixtures for testing the project store with an
in-memory SQLite database, plus in-memory fakes for the generation API.
"""

from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clipflow.database import create_test_engine, init_models
from clipflow.services.project_store import ProjectStore
from tests.support.fakes import FakeGenerationService, FakeProjectStore


@pytest.fixture(autouse=True)
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point WORKSPACE_ROOT at a per-test temporary directory.

    Every downloaded image and video of a test lands under this directory.
    """
    root = tmp_path / "workspace"
    root.mkdir()
    monkeypatch.setenv("WORKSPACE_ROOT", str(root))
    return root


@pytest_asyncio.fixture
async def async_engine():
    """Create an async SQLite engine for testing.

    Uses in-memory SQLite with aiosqlite for fast test execution.
    Creates all tables before yielding, disposes after.
    """
    engine, _ = create_test_engine()
    await init_models(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def project_store(async_engine) -> ProjectStore:
    """ProjectStore bound to the in-memory test database."""
    session_factory = async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    return ProjectStore(session_factory)


@pytest.fixture
def fake_service() -> FakeGenerationService:
    """Generation service whose jobs complete on the first status query."""
    return FakeGenerationService()


@pytest.fixture
def fake_store() -> FakeProjectStore:
    return FakeProjectStore()
