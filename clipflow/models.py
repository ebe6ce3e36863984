"""SQLAlchemy 2.0 ORM models and status enums.

This module contains the persistence model for projects and the status enums
shared by the pipeline. All models use the Mapped[type] annotation pattern
required by SQLAlchemy 2.0.

Snapshot Pattern:
    A project (settings plus every clip) is stored as one JSON snapshot in the
    `snapshot` column. Only the latest snapshot is durable; progress events are
    never replayed to rebuild state. `status` and `name` are duplicated into
    plain columns so listing projects does not need to decode snapshots.
"""

import enum
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    """Get current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class ClipStatus(str, enum.Enum):
    """Per-clip workflow state machine.

    Pipeline Flow (Happy Path):
        pending → generating_image → [reviewing_image] → uploading_asset
        → generating_video → completed

    Failure Flow:
        any active state → failed → skipped

    reviewing_image is only entered when review is enabled and more than one
    candidate came back. skipped marks a clip that failed during a run; it is
    reset to pending when the batch is started again.
    """

    PENDING = "pending"
    GENERATING_IMAGE = "generating_image"
    REVIEWING_IMAGE = "reviewing_image"
    UPLOADING_ASSET = "uploading_asset"
    GENERATING_VIDEO = "generating_video"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


# Statuses from which no further automatic transition occurs
TERMINAL_CLIP_STATUSES = frozenset({ClipStatus.COMPLETED, ClipStatus.SKIPPED})


class ProjectStatus(str, enum.Enum):
    """Aggregate project status.

    generating holds for the whole duration of an orchestrator run. compiling
    is only used when a video compiler is configured.
    """

    DRAFT = "draft"
    GENERATING = "generating"
    COMPILING = "compiling"
    COMPLETED = "completed"
    ERROR = "error"


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class ProjectRecord(Base):
    """Durable snapshot of one project.

    Attributes:
        id: Project identifier (also used in workspace paths).
        name: Human-readable project name.
        status: Aggregate ProjectStatus value at the time of the last write.
        snapshot: Full JSON snapshot of the Project schema (camelCase keys).
        created_at: When the project was first stored.
        updated_at: When the latest snapshot was written.
    """

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ProjectStatus.DRAFT.value)
    snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_projects_status", "status"),
        Index("ix_projects_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ProjectRecord(id={self.id!r}, name={self.name!r}, status={self.status!r})>"
