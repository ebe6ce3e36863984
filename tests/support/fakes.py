"""In-memory collaborators for pipeline tests.

FakeGenerationService answers instantly (one event-loop yield per call) and
records every call. FakeProjectStore keeps deep copies of saved projects.
"""

import asyncio
from collections.abc import Callable
from pathlib import Path

from clipflow.schemas.project import GeneratedImage, Project
from clipflow.services.interfaces import ImageGenerationResult, JobStatus


class FakeGenerationService:
    """Scriptable GenerationService.

    Args:
        job_statuses: Status sequence returned by successive status queries
            of each video job; the last entry repeats once exhausted
        fail_prompts: Image prompts whose generation raises RuntimeError
        candidate_count: Force the number of returned candidates
            (default: the requested count)
    """

    def __init__(
        self,
        job_statuses: list[str] | None = None,
        fail_prompts: set[str] | None = None,
        candidate_count: int | None = None,
    ) -> None:
        self.job_statuses = job_statuses or ["completed"]
        self.fail_prompts = fail_prompts or set()
        self.candidate_count = candidate_count
        self.job_error = "content policy violation"
        self.after_submit: Callable[[], None] | None = None
        self.status_errors: list[Exception] = []
        self.status_delay = 0.0

        self.generate_calls: list[dict] = []
        self.upload_calls: list[dict] = []
        self.submit_calls: list[dict] = []
        self.status_calls: list[str] = []
        self.downloads: list[tuple[str, Path]] = []
        self._poll_counts: dict[str, int] = {}

    async def generate_images(
        self,
        prompt: str,
        *,
        model: str | None = None,
        aspect_ratio: str = "portrait",
        count: int = 1,
        email: str | None = None,
    ) -> ImageGenerationResult:
        await asyncio.sleep(0)
        call_number = len(self.generate_calls)
        self.generate_calls.append(
            {"prompt": prompt, "aspect_ratio": aspect_ratio, "count": count, "email": email}
        )
        if prompt in self.fail_prompts:
            raise RuntimeError(f"Image generation failed for '{prompt}'")

        returned = self.candidate_count if self.candidate_count is not None else count
        return ImageGenerationResult(
            job_id=f"img-job-{call_number}",
            media=[
                GeneratedImage(
                    url=f"https://media.test/img/{call_number}/{i}.jpg",
                    asset_ref=f"media-{call_number}-{i}",
                    seed=i,
                )
                for i in range(returned)
            ],
        )

    async def upload_asset(
        self, image_bytes: bytes, content_type: str, *, email: str | None = None
    ) -> str:
        await asyncio.sleep(0)
        self.upload_calls.append(
            {"size": len(image_bytes), "content_type": content_type, "email": email}
        )
        return f"asset-{len(self.upload_calls)}"

    async def submit_video_job(
        self,
        prompt: str,
        *,
        start_image_ref: str,
        aspect_ratio: str = "portrait",
        model: str | None = None,
        email: str | None = None,
    ) -> str:
        await asyncio.sleep(0)
        self.submit_calls.append(
            {"prompt": prompt, "start_image_ref": start_image_ref, "aspect_ratio": aspect_ratio}
        )
        job_id = f"video-job-{len(self.submit_calls)}"
        if self.after_submit is not None:
            self.after_submit()
        return job_id

    async def get_job_status(self, job_id: str) -> JobStatus:
        self.status_calls.append(job_id)
        await asyncio.sleep(self.status_delay)
        if self.status_errors:
            raise self.status_errors.pop(0)

        poll_number = self._poll_counts.get(job_id, 0)
        self._poll_counts[job_id] = poll_number + 1
        status = self.job_statuses[min(poll_number, len(self.job_statuses) - 1)]

        return JobStatus(
            job_id=job_id,
            status=status,
            payload={"jobid": job_id, "status": status},
            error=self.job_error if status == "failed" else None,
            result_url=f"https://media.test/{job_id}.mp4" if status == "completed" else None,
        )

    async def download_file(self, url: str, destination: Path) -> Path:
        await asyncio.sleep(0)
        self.downloads.append((url, destination))
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"fake-media:" + url.encode())
        return destination

    async def get_accounts(self) -> dict:
        return {"creator@example.com": {"health": "ok"}}


class FakeProjectStore:
    """ProjectStateStore keeping deep copies in a dict."""

    def __init__(self) -> None:
        self.projects: dict[str, Project] = {}
        self.save_count = 0

    async def save(self, project: Project) -> None:
        await asyncio.sleep(0)
        self.projects[project.id] = project.model_copy(deep=True)
        self.save_count += 1

    async def get(self, project_id: str) -> Project | None:
        project = self.projects.get(project_id)
        return project.model_copy(deep=True) if project is not None else None

    async def list_projects(self, limit: int = 50, offset: int = 0) -> list[Project]:
        projects = sorted(self.projects.values(), key=lambda p: p.created_at, reverse=True)
        return [p.model_copy(deep=True) for p in projects[offset : offset + limit]]

    async def delete(self, project_id: str) -> bool:
        return self.projects.pop(project_id, None) is not None


class FakeVideoCompiler:
    """VideoCompiler returning a fixed path, or raising when error is set."""

    def __init__(self, output: Path, error: Exception | None = None) -> None:
        self.output = output
        self.error = error
        self.compiled: list[str] = []

    async def compile(self, project: Project) -> Path:
        await asyncio.sleep(0)
        self.compiled.append(project.id)
        if self.error is not None:
            raise self.error
        return self.output
