"""Pipeline Orchestrator Service for batch clip generation.

This module owns one batch: it fans out a ClipWorkflow per unfinished clip
of a project, isolates per-clip failures, aggregates the outcome and exposes
abort and image selection to the web layer.

Key Responsibilities:
- Mark the project generating for the whole run
- Launch workflows concurrently, bounded by a worker pool (Semaphore)
- Wait for every workflow to settle (completed or skipped)
- Resolve the batch: error when nothing completed, completed otherwise
- Optionally hand completed clips to a VideoCompiler
- Publish every event through the project's EventBus, which also triggers
  the serialized snapshot writes

Re-runs:
    Clips already completed are left untouched. Every other clip (skipped,
    or left in an intermediate status by a restart) is reset to pending and
    relaunched.

Abort:
    abort() only sets a cooperative flag. Workflows observe it before they
    begin, between steps, while waiting for review and between job polls,
    and then fail with "Pipeline aborted". Remote jobs already submitted
    keep running on the remote side.

Usage:
    from clipflow.services.pipeline_orchestrator import PipelineOrchestrator

    orchestrator = PipelineOrchestrator(project, client, store)
    subscription = orchestrator.event_bus.subscribe()
    project = await orchestrator.run()
"""

import asyncio
import time
from typing import Any

from clipflow.config import PipelineConfig
from clipflow.exceptions import ImageSelectionError, PipelineAlreadyRunningError
from clipflow.models import ClipStatus, ProjectStatus
from clipflow.schemas.events import PipelineEventType
from clipflow.schemas.project import Clip, Project
from clipflow.services.clip_workflow import ClipWorkflow
from clipflow.services.event_bus import EventBus
from clipflow.services.interfaces import GenerationService, ProjectStateStore, VideoCompiler
from clipflow.services.job_poller import JobPoller
from clipflow.services.review_gate import ReviewGate
from clipflow.services.snapshot_writer import ProjectSnapshotWriter
from clipflow.utils.logging import get_logger

log = get_logger(__name__)


class PipelineOrchestrator:
    """Runs one project's clips through their workflows.

    One instance is bound to one project; the web layer keeps at most one
    instance per project id in the PipelineRegistry.

    Attributes:
        project: The project being generated (mutated in place)
        event_bus: Progress events of this project
        config: Batch tunables (worker pool size, timeouts, ...)
    """

    def __init__(
        self,
        project: Project,
        service: GenerationService,
        store: ProjectStateStore | None = None,
        config: PipelineConfig | None = None,
        compiler: VideoCompiler | None = None,
    ) -> None:
        self.project = project
        self.log = log.bind(project_id=project.id)
        self.service = service
        self.config = config or PipelineConfig.from_env()
        self.compiler = compiler
        self.writer = ProjectSnapshotWriter(store, project.id) if store is not None else None
        self.event_bus = EventBus(project, self.writer, self.config.event_queue_size)
        self.poller = JobPoller(service)

        self._abort_event = asyncio.Event()
        self._running = False
        self._review_gates: dict[int, ReviewGate] = {}

    def is_running(self) -> bool:
        return self._running

    @property
    def abort_requested(self) -> bool:
        return self._abort_event.is_set()

    async def run(self) -> Project:
        """Run every unfinished clip and resolve the batch.

        Returns:
            The project with every clip completed or skipped

        Raises:
            PipelineAlreadyRunningError: This instance is already running
        """
        if self._running:
            raise PipelineAlreadyRunningError(self.project.id)

        self._running = True
        self._abort_event.clear()
        try:
            return await self._run_batch()
        finally:
            self._running = False
            if self.writer is not None:
                await self.writer.flush()

    async def _run_batch(self) -> Project:
        project = self.project
        batch_start = time.monotonic()

        clips = [clip for clip in project.clips if clip.status != ClipStatus.COMPLETED]
        for clip in clips:
            clip.reset_for_rerun()

        project.status = ProjectStatus.GENERATING
        self.log.info(
            "pipeline_started",
            total_clips=len(project.clips),
            launched_clips=len(clips),
            max_concurrent=self.config.max_concurrent_clips,
        )
        self.event_bus.emit(
            PipelineEventType.PIPELINE_STARTED,
            data={"totalClips": len(project.clips), "launchedClips": len(clips)},
        )

        semaphore = asyncio.Semaphore(self.config.max_concurrent_clips)

        async def run_clip(clip: Clip) -> bool:
            """Run one clip's workflow inside the worker pool."""
            async with semaphore:
                workflow = ClipWorkflow(
                    project,
                    clip,
                    self.service,
                    self.poller,
                    self.event_bus,
                    self.config,
                    self._abort_event,
                    self._review_gates,
                )
                return await workflow.run()

        results = await asyncio.gather(*[run_clip(clip) for clip in clips], return_exceptions=True)

        for clip, result in zip(clips, results):
            if isinstance(result, BaseException):
                self.log.error(
                    "clip_workflow_crashed",
                    clip_index=clip.index,
                    error=str(result),
                    error_type=type(result).__name__,
                )

        await self._finish_batch()

        self.log.info(
            "pipeline_finished",
            status=project.status.value,
            aborted=self.abort_requested,
            duration_seconds=round(time.monotonic() - batch_start, 1),
        )
        return project

    async def _finish_batch(self) -> None:
        """Resolve project status from the clip outcomes and announce it."""
        project = self.project
        completed = project.count_by_status(ClipStatus.COMPLETED)
        skipped = project.count_by_status(ClipStatus.SKIPPED)
        total = len(project.clips)

        if completed == 0:
            project.status = ProjectStatus.ERROR
            self.event_bus.emit(
                PipelineEventType.PIPELINE_ERROR,
                data={
                    "error": "All clips failed",
                    "completed": completed,
                    "skipped": skipped,
                    "total": total,
                },
            )
            return

        data: dict[str, Any] = {
            "completed": completed,
            "skipped": skipped,
            "failed": skipped,
            "total": total,
        }

        if self.compiler is not None:
            compile_error = await self._compile()
            if compile_error is not None:
                data["compileError"] = compile_error
        else:
            project.status = ProjectStatus.COMPLETED

        data["finalVideoPath"] = project.final_video_path
        data["clips"] = [clip.model_dump(mode="json", by_alias=True) for clip in project.clips]
        self.event_bus.emit(PipelineEventType.PIPELINE_COMPLETED, data=data)

    async def _compile(self) -> str | None:
        """Run the video compiler. Returns the error text on failure."""
        project = self.project
        project.status = ProjectStatus.COMPILING
        self.event_bus.emit(PipelineEventType.COMPILING)

        try:
            final_path = await self.compiler.compile(project)
        except Exception as e:
            self.log.error(
                "compile_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            project.status = ProjectStatus.DRAFT
            return str(e)

        project.final_video_path = str(final_path)
        project.status = ProjectStatus.COMPLETED
        self.log.info("compile_completed", final_video_path=str(final_path))
        return None

    def abort(self) -> None:
        """Request a cooperative stop of the running batch.

        In-flight remote calls finish; workflows stop at their next
        checkpoint. Does nothing when the batch is not running.
        """
        if not self._running:
            self.log.info("pipeline_abort_ignored")
            return

        self._abort_event.set()
        self.log.info("pipeline_abort_requested")
        self.event_bus.emit(PipelineEventType.PIPELINE_ABORTED)

    def select_image(self, clip_index: int, image_index: int) -> None:
        """Resolve the pending review of a clip with the chosen candidate.

        Raises:
            ImageSelectionError: The clip is not awaiting review or
                image_index is out of range
        """
        clip = self.project.get_clip(clip_index)
        gate = self._review_gates.get(clip_index)
        if (
            clip is None
            or gate is None
            or not gate.is_open
            or clip.status != ClipStatus.REVIEWING_IMAGE
        ):
            raise ImageSelectionError(f"Clip {clip_index} is not awaiting image selection")

        gate.resolve(image_index)
        self.log.info(
            "image_selected",
            clip_index=clip_index,
            image_index=image_index,
        )
        self.event_bus.emit(
            PipelineEventType.IMAGE_SELECTED,
            clip_index,
            {"imageIndex": image_index},
        )
