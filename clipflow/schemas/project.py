"""Pydantic schemas for projects and clips.

The Project schema is the in-memory working state of a batch and also the
shape of the durable snapshot and of the `initial_state` event payload.
Field names are snake_case in Python and camelCase on the wire
(`imagePrompt`, `selectedImageIndex`, ...), matching the progress stream.

Ownership:
    While a batch runs, the orchestrator owns the Project and each clip
    workflow exclusively owns its Clip. No two workflows write the same Clip.
"""

from datetime import datetime
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from clipflow.exceptions import InvalidStateTransitionError
from clipflow.models import ClipStatus, ProjectStatus, utcnow


class CamelModel(BaseModel):
    """Base schema serializing field names as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeneratedImage(CamelModel):
    """One image candidate returned by the image generation step."""

    url: str = Field(..., description="Signed download URL of the candidate")
    asset_ref: str = Field(..., description="Remote media id of the candidate")
    seed: int | None = None


class ProjectSettings(CamelModel):
    """Per-project generation settings.

    Extra keys (title overlay styling and the like) are kept as-is so the
    external compiler can read them from the same snapshot.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    auto_pick_image: bool = Field(
        default=True,
        description="When true, one image is generated and used without human review",
    )
    aspect_ratio: Literal["9:16", "16:9"] = "9:16"
    title_text: str = ""
    title_position: Literal["top", "bottom"] = "top"

    @property
    def review_enabled(self) -> bool:
        return not self.auto_pick_image

    @property
    def remote_aspect_ratio(self) -> str:
        """Aspect ratio name understood by the generation API."""
        return "portrait" if self.aspect_ratio == "9:16" else "landscape"


class Clip(CamelModel):
    """One unit of work in a batch, tracked through its own state machine.

    Attributes:
        index: Position in the project, unique and never reordered.
        retry_count: Reserved. Reset to 0 at the start of every attempt and
            never incremented; no retry behaviour depends on it.
        selected_image_index: Only set while reviewing_image or after the clip
            has passed through that state.
    """

    # Allowed transitions; failed is reachable from every active state
    VALID_TRANSITIONS: ClassVar[dict[ClipStatus, tuple[ClipStatus, ...]]] = {
        ClipStatus.PENDING: (ClipStatus.GENERATING_IMAGE, ClipStatus.FAILED),
        ClipStatus.GENERATING_IMAGE: (
            ClipStatus.REVIEWING_IMAGE,
            ClipStatus.UPLOADING_ASSET,
            ClipStatus.FAILED,
        ),
        ClipStatus.REVIEWING_IMAGE: (ClipStatus.UPLOADING_ASSET, ClipStatus.FAILED),
        ClipStatus.UPLOADING_ASSET: (ClipStatus.GENERATING_VIDEO, ClipStatus.FAILED),
        ClipStatus.GENERATING_VIDEO: (ClipStatus.COMPLETED, ClipStatus.FAILED),
        ClipStatus.FAILED: (ClipStatus.SKIPPED,),
        ClipStatus.SKIPPED: (),
        ClipStatus.COMPLETED: (),
    }

    index: int = Field(..., ge=0)
    image_prompt: str = ""
    video_prompt: str = ""
    status: ClipStatus = ClipStatus.PENDING
    error: str | None = None
    retry_count: int = 0

    image_job_id: str | None = None
    generated_images: list[GeneratedImage] = Field(default_factory=list)
    selected_image_index: int | None = None
    local_image_path: str | None = None

    uploaded_asset_ref: str | None = None

    video_job_id: str | None = None
    video_url: str | None = None
    local_video_path: str | None = None

    def transition_to(self, new_status: ClipStatus) -> None:
        """Move the clip to new_status.

        Raises:
            InvalidStateTransitionError: If the transition is not listed in
                VALID_TRANSITIONS.
        """
        allowed = self.VALID_TRANSITIONS.get(self.status, ())
        if new_status not in allowed:
            raise InvalidStateTransitionError(
                f"Invalid transition: {self.status.value} → {new_status.value}",
                from_status=self.status,
                to_status=new_status,
            )
        self.status = new_status

    def reset_for_rerun(self) -> None:
        """Return an unfinished clip to pending and clear per-attempt output.

        Used when a batch is started again: skipped clips, and clips left in an
        intermediate status by a process restart, start over from scratch.
        Prompts and the index are kept.
        """
        self.status = ClipStatus.PENDING
        self.error = None
        self.retry_count = 0
        self.image_job_id = None
        self.generated_images = []
        self.selected_image_index = None
        self.local_image_path = None
        self.uploaded_asset_ref = None
        self.video_job_id = None
        self.video_url = None
        self.local_video_path = None

    @property
    def has_prompts(self) -> bool:
        return bool(self.image_prompt.strip()) and bool(self.video_prompt.strip())


class Project(CamelModel):
    """A batch of clips processed together by one orchestrator run."""

    id: str = Field(..., min_length=1, max_length=64, pattern=r"^[a-zA-Z0-9_-]+$")
    name: str = Field(..., min_length=1, max_length=255)
    created_at: datetime = Field(default_factory=utcnow)
    status: ProjectStatus = ProjectStatus.DRAFT
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    clips: list[Clip] = Field(default_factory=list)
    final_video_path: str | None = None
    account_email: str | None = None

    @model_validator(mode="after")
    def _check_unique_clip_indices(self) -> "Project":
        indices = [clip.index for clip in self.clips]
        if len(indices) != len(set(indices)):
            raise ValueError("Clip indices must be unique within a project")
        return self

    def get_clip(self, clip_index: int) -> Clip | None:
        """Return the clip with the given index, or None."""
        for clip in self.clips:
            if clip.index == clip_index:
                return clip
        return None

    def missing_prompt_indices(self) -> list[int]:
        """Indices of clips lacking image or video prompt text."""
        return [clip.index for clip in self.clips if not clip.has_prompts]

    def count_by_status(self, status: ClipStatus) -> int:
        return sum(1 for clip in self.clips if clip.status == status)

    def to_snapshot(self) -> dict[str, Any]:
        """JSON-compatible snapshot with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class ClipCreate(CamelModel):
    """Clip definition supplied when creating a project."""

    image_prompt: str = ""
    video_prompt: str = ""


class ProjectCreate(CamelModel):
    """Request body for POST /api/projects.

    Clip indices are assigned in list order starting at 0.
    """

    name: str = Field(..., min_length=1, max_length=255)
    settings: ProjectSettings = Field(default_factory=ProjectSettings)
    clips: list[ClipCreate] = Field(default_factory=list)
    account_email: str | None = None


class ImageSelection(BaseModel):
    """Request body for the select-image endpoint."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    image_index: int = Field(..., ge=0)
