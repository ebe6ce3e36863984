"""Collaborator interfaces used by the pipeline.

The orchestrator depends on these protocols rather than on concrete classes,
so the HTTP client, the SQL store and an external compiler can each be
replaced by in-memory fakes in tests.

Collaborators:
    GenerationService: remote image generation, asset upload, video jobs
    ProjectStateStore: durable project snapshots
    VideoCompiler: optional final muxing/overlay step (external tool)
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from clipflow.schemas.project import GeneratedImage, Project

# Job status values reported by the generation API
JOB_STATUS_CREATED = "created"
JOB_STATUS_STARTED = "started"
JOB_STATUS_COMPLETED = "completed"
JOB_STATUS_FAILED = "failed"


@dataclass
class ImageGenerationResult:
    """Result of one image generation request.

    Attributes:
        job_id: Remote job id of the image request
        media: Generated candidates, in the order the API returned them
    """

    job_id: str
    media: list[GeneratedImage] = field(default_factory=list)


@dataclass
class JobStatus:
    """Status of a remote job as returned by one status query.

    Attributes:
        job_id: Remote job identifier
        status: created | started | completed | failed (other values are
            treated as still running)
        payload: Raw response body of the job, if any
        error: Remote error text when status is failed
        result_url: Download URL of the produced media once completed
    """

    job_id: str
    status: str
    payload: dict[str, Any] | None = None
    error: str | None = None
    result_url: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JOB_STATUS_COMPLETED, JOB_STATUS_FAILED)


class GenerationService(Protocol):
    """Remote API surface for image generation, asset upload and video jobs."""

    async def generate_images(
        self,
        prompt: str,
        *,
        model: str | None = None,
        aspect_ratio: str = "portrait",
        count: int = 1,
        email: str | None = None,
    ) -> ImageGenerationResult: ...

    async def upload_asset(
        self, image_bytes: bytes, content_type: str, *, email: str | None = None
    ) -> str: ...

    async def submit_video_job(
        self,
        prompt: str,
        *,
        start_image_ref: str,
        aspect_ratio: str = "portrait",
        model: str | None = None,
        email: str | None = None,
    ) -> str: ...

    async def get_job_status(self, job_id: str) -> JobStatus: ...

    async def download_file(self, url: str, destination: Path) -> Path: ...


class ProjectStateStore(Protocol):
    """Durable storage for the latest project snapshot."""

    async def save(self, project: Project) -> None: ...

    async def get(self, project_id: str) -> Project | None: ...


class VideoCompiler(Protocol):
    """Final muxing/overlay step run after a batch with completed clips.

    Implementations wrap an external media tool and return the path of the
    compiled video.
    """

    async def compile(self, project: Project) -> Path: ...
