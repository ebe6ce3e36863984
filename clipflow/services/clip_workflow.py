"""Per-clip state machine.

A ClipWorkflow drives one clip from pending to completed:

    pending → generating_image → [reviewing_image] → uploading_asset
    → generating_video → completed

Steps:
    1. generating_image: request one image (review disabled) or several
       candidates (review enabled)
    2. reviewing_image: only when review is enabled and more than one
       candidate came back; suspends on a ReviewGate until a selection,
       the review timeout (candidate 0) or an abort
    3. uploading_asset: download the chosen candidate, upload it, keep the
       returned asset reference
    4. generating_video: submit the video job, poll it to completion,
       download the result

Each status change is published before the step's work starts. The abort
flag is checked before the first step, between steps, inside the review
wait and between poll iterations.

Failure Handling:
    Any exception ends the workflow: the error is recorded, the clip goes
    failed → skipped with clip_failed then clip_skipped events, and run()
    returns False. Nothing propagates to sibling clips and no step is
    retried here (the HTTP client retries transient request failures).
"""

import asyncio

from clipflow.config import PipelineConfig
from clipflow.exceptions import ClipStepError, PipelineAbortedError
from clipflow.models import ClipStatus
from clipflow.schemas.events import PipelineEventType
from clipflow.schemas.project import Clip, Project
from clipflow.services.event_bus import EventBus
from clipflow.services.interfaces import GenerationService
from clipflow.services.job_poller import JobPoller
from clipflow.services.review_gate import ReviewGate
from clipflow.utils.filesystem import (
    get_clip_image_path,
    get_clip_video_path,
    guess_image_content_type,
)
from clipflow.utils.logging import get_logger

log = get_logger(__name__)


class ClipWorkflow:
    """Runs the generation steps of a single clip.

    The workflow has exclusive write access to its Clip for the duration of
    run(). Review gates are registered in review_gates (shared with the
    orchestrator) while the clip waits for a selection.
    """

    def __init__(
        self,
        project: Project,
        clip: Clip,
        service: GenerationService,
        poller: JobPoller,
        event_bus: EventBus,
        config: PipelineConfig,
        abort_event: asyncio.Event,
        review_gates: dict[int, ReviewGate],
    ) -> None:
        self.project = project
        self.clip = clip
        self.service = service
        self.poller = poller
        self.event_bus = event_bus
        self.config = config
        self.abort_event = abort_event
        self.review_gates = review_gates
        self.log = log.bind(project_id=project.id, clip_index=clip.index)

    async def run(self) -> bool:
        """Run every step of the clip.

        Returns:
            True if the clip completed, False if it was failed and skipped
        """
        clip = self.clip
        clip.retry_count = 0

        try:
            self._check_abort()
            await self._generate_image()

            self._check_abort()
            selected_index = await self._select_image()

            self._check_abort()
            await self._upload_asset(selected_index)

            self._check_abort()
            await self._generate_video()
        except Exception as e:
            self._fail(e)
            return False

        clip.transition_to(ClipStatus.COMPLETED)
        self.log.info("clip_completed")
        self.event_bus.emit(
            PipelineEventType.CLIP_COMPLETED,
            clip.index,
            {"videoPath": clip.local_video_path},
        )
        return True

    def _check_abort(self) -> None:
        if self.abort_event.is_set():
            raise PipelineAbortedError()

    def _enter(self, status: ClipStatus) -> None:
        """Transition the clip and announce the new status."""
        self.clip.transition_to(status)
        self.event_bus.emit(
            PipelineEventType.CLIP_STATUS_CHANGED,
            self.clip.index,
            {"status": status.value},
        )

    async def _generate_image(self) -> None:
        clip = self.clip
        self._enter(ClipStatus.GENERATING_IMAGE)

        settings = self.project.settings
        count = self.config.review_candidate_count if settings.review_enabled else 1

        result = await self.service.generate_images(
            clip.image_prompt,
            aspect_ratio=settings.remote_aspect_ratio,
            count=count,
            email=self.project.account_email,
        )
        if not result.media:
            raise ClipStepError("No images returned by image generation")

        clip.image_job_id = result.job_id
        clip.generated_images = list(result.media)
        self.log.info("clip_images_generated", candidates=len(result.media))

    async def _select_image(self) -> int:
        """Choose the candidate to animate, suspending for review if needed."""
        clip = self.clip
        candidates = clip.generated_images

        if not self.project.settings.review_enabled or len(candidates) <= 1:
            return 0

        self._enter(ClipStatus.REVIEWING_IMAGE)

        gate = ReviewGate(clip.index, len(candidates))
        self.review_gates[clip.index] = gate
        try:
            self.event_bus.emit(
                PipelineEventType.IMAGE_REVIEW_NEEDED,
                clip.index,
                {"images": [image.model_dump(mode="json", by_alias=True) for image in candidates]},
            )
            selected_index = await gate.wait(self.config.review_timeout, self.abort_event)
        finally:
            self.review_gates.pop(clip.index, None)

        clip.selected_image_index = selected_index
        return selected_index

    async def _upload_asset(self, selected_index: int) -> None:
        clip = self.clip
        self._enter(ClipStatus.UPLOADING_ASSET)

        image = clip.generated_images[selected_index]
        image_path = get_clip_image_path(self.project.id, clip.index)
        await self.service.download_file(image.url, image_path)
        clip.local_image_path = str(image_path)

        clip.uploaded_asset_ref = await self.service.upload_asset(
            image_path.read_bytes(),
            guess_image_content_type(image_path),
            email=self.project.account_email,
        )

    async def _generate_video(self) -> None:
        clip = self.clip
        self._enter(ClipStatus.GENERATING_VIDEO)

        clip.video_job_id = await self.service.submit_video_job(
            clip.video_prompt,
            start_image_ref=clip.uploaded_asset_ref,
            aspect_ratio=self.project.settings.remote_aspect_ratio,
            email=self.project.account_email,
        )

        job = await self.poller.poll_until_done(
            clip.video_job_id,
            interval=self.config.video_poll_interval,
            timeout=self.config.video_job_timeout,
            on_poll=self._report_video_progress,
            should_abort=self.abort_event.is_set,
        )
        if not job.result_url:
            raise ClipStepError(f"Job {job.job_id} completed without a video URL")

        clip.video_url = job.result_url
        video_path = get_clip_video_path(self.project.id, clip.index)
        await self.service.download_file(job.result_url, video_path)
        clip.local_video_path = str(video_path)

    def _report_video_progress(self, job_status: str, elapsed: float) -> None:
        self.event_bus.emit(
            PipelineEventType.VIDEO_PROGRESS,
            self.clip.index,
            {"jobStatus": job_status, "elapsed": round(elapsed, 1)},
        )

    def _fail(self, error: Exception) -> None:
        """Record the error and move the clip failed → skipped."""
        clip = self.clip
        clip.error = str(error)

        self.log.error(
            "clip_failed",
            status=clip.status.value,
            error=clip.error,
            error_type=type(error).__name__,
        )

        clip.transition_to(ClipStatus.FAILED)
        self.event_bus.emit(PipelineEventType.CLIP_FAILED, clip.index, {"error": clip.error})

        clip.transition_to(ClipStatus.SKIPPED)
        self.event_bus.emit(PipelineEventType.CLIP_SKIPPED, clip.index, {"error": clip.error})
