"""Progress event schema.

Every state change of a batch is published as an immutable PipelineEvent.
On the progress stream each event is one JSON object:

    {"type": "clip_status_changed", "projectId": "p1", "clipIndex": 0,
     "data": {"status": "generating_image"}, "timestamp": "2026-..."}

clipIndex and data are omitted when not set.
"""

import enum
from datetime import datetime
from typing import Any

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from clipflow.models import utcnow
from clipflow.schemas.project import CamelModel


class PipelineEventType(str, enum.Enum):
    """Event types carried on the progress stream."""

    PIPELINE_STARTED = "pipeline_started"
    CLIP_STATUS_CHANGED = "clip_status_changed"
    CLIP_COMPLETED = "clip_completed"
    CLIP_FAILED = "clip_failed"
    CLIP_SKIPPED = "clip_skipped"
    IMAGE_REVIEW_NEEDED = "image_review_needed"
    IMAGE_SELECTED = "image_selected"
    VIDEO_PROGRESS = "video_progress"
    COMPILING = "compiling"
    PIPELINE_COMPLETED = "pipeline_completed"
    PIPELINE_ERROR = "pipeline_error"
    PIPELINE_ABORTED = "pipeline_aborted"
    # Synthetic events, never published through the bus
    INITIAL_STATE = "initial_state"
    NO_PIPELINE = "no_pipeline"


class PipelineEvent(CamelModel):
    """One immutable progress event."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: PipelineEventType
    project_id: str
    clip_index: int | None = None
    data: dict[str, Any] | None = None
    timestamp: datetime = Field(default_factory=utcnow)

    def to_wire(self) -> str:
        """Serialize for the progress stream (camelCase, unset fields omitted)."""
        return self.model_dump_json(by_alias=True, exclude_none=True)
