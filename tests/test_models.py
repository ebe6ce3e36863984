"""Tests for SQLAlchemy models and status enums.

Tests the ProjectRecord model (defaults, timestamps, snapshot column) and
the string values of the status enums, which appear on the wire.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from clipflow.models import TERMINAL_CLIP_STATUSES, ClipStatus, ProjectRecord, ProjectStatus


@pytest.fixture
def session_factory(async_engine):
    return async_sessionmaker(bind=async_engine, expire_on_commit=False)


@pytest.mark.asyncio
async def test_project_record_defaults(session_factory):
    """Test that status and timestamps are populated on insert."""
    before_create = datetime.now(timezone.utc)

    async with session_factory() as session, session.begin():
        record = ProjectRecord(id="proj_defaults", name="Defaults", snapshot={})
        session.add(record)

    assert record.status == ProjectStatus.DRAFT.value
    assert record.created_at is not None
    assert record.created_at >= before_create


@pytest.mark.asyncio
async def test_project_record_updated_at_changes_on_update(session_factory):
    """Test that updated_at moves forward when the snapshot is replaced."""
    async with session_factory() as session, session.begin():
        record = ProjectRecord(id="proj_update", name="Update", snapshot={"v": 1})
        session.add(record)
    first_update = record.updated_at

    async with session_factory() as session, session.begin():
        stored = (
            await session.execute(select(ProjectRecord).where(ProjectRecord.id == "proj_update"))
        ).scalar_one()
        stored.snapshot = {"v": 2}
        stored.status = ProjectStatus.GENERATING.value

    async with session_factory() as session:
        reloaded = await session.get(ProjectRecord, "proj_update")

    assert reloaded.snapshot == {"v": 2}
    assert reloaded.status == "generating"
    assert reloaded.updated_at.replace(tzinfo=None) >= first_update.replace(tzinfo=None)


def test_clip_status_wire_values():
    """Clip statuses serialize as snake_case strings."""
    assert [status.value for status in ClipStatus] == [
        "pending",
        "generating_image",
        "reviewing_image",
        "uploading_asset",
        "generating_video",
        "completed",
        "failed",
        "skipped",
    ]


def test_terminal_clip_statuses():
    """Only completed and skipped end a clip's run."""
    assert TERMINAL_CLIP_STATUSES == {ClipStatus.COMPLETED, ClipStatus.SKIPPED}
    assert ClipStatus.FAILED not in TERMINAL_CLIP_STATUSES


def test_project_status_is_str_enum():
    assert ProjectStatus("compiling") is ProjectStatus.COMPILING
    assert ProjectStatus.ERROR == "error"
