"""Batch generation routes.

This module provides the control surface and progress stream of a batch:
- POST /api/projects/{project_id}/generate - Start a batch in the background
- POST /api/projects/{project_id}/abort - Request a cooperative stop
- POST /api/projects/{project_id}/clips/{clip_index}/select-image - Resolve a review
- GET /api/projects/{project_id}/status - Server-sent event stream of progress

Progress Stream:
    Each message is `data: {json}` with one PipelineEvent. The first message
    is always `initial_state` with the full project. When the stored project
    says generating but no orchestrator is live (e.g. after a restart), a
    `no_pipeline` event follows and the stream ends. Comment lines are sent
    as keep-alives while the batch is quiet.
"""

import asyncio
from collections.abc import AsyncIterator

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from clipflow.config import PipelineConfig, get_sse_keepalive_interval
from clipflow.exceptions import ImageSelectionError, PipelineAlreadyRunningError
from clipflow.models import ClipStatus, ProjectStatus
from clipflow.routes.dependencies import get_generation_client, get_registry, get_store
from clipflow.schemas.events import PipelineEvent, PipelineEventType
from clipflow.schemas.project import ImageSelection, Project
from clipflow.services.interfaces import GenerationService
from clipflow.services.pipeline_orchestrator import PipelineOrchestrator
from clipflow.services.pipeline_registry import PipelineRegistry
from clipflow.services.project_store import ProjectStore

log = structlog.get_logger()
router = APIRouter(prefix="/api/projects", tags=["generation"])

# Events after which a batch has nothing more to report
FINAL_EVENT_TYPES = frozenset(
    {PipelineEventType.PIPELINE_COMPLETED, PipelineEventType.PIPELINE_ERROR}
)


async def _load_project(store: ProjectStore, project_id: str) -> Project:
    project = await store.get(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


async def _resolve_account_email(client: GenerationService) -> str:
    """Pick the first configured account of the generation API."""
    accounts = await client.get_accounts()
    if not accounts:
        raise HTTPException(status_code=400, detail="No generation account configured")
    return next(iter(accounts))


@router.post("/{project_id}/generate", status_code=status.HTTP_202_ACCEPTED)
async def start_generation(
    project_id: str,
    request: Request,
    store: ProjectStore = Depends(get_store),
    registry: PipelineRegistry = Depends(get_registry),
    client: GenerationService = Depends(get_generation_client),
) -> JSONResponse:
    """Start a batch for every unfinished clip of the project.

    Returns:
        202 Accepted: Batch started in the background
        400 Bad Request: Clips without prompts, no clips, or no account
        404 Not Found: Unknown project
        409 Conflict: A batch is already running for the project
    """
    project = await _load_project(store, project_id)

    if registry.get(project_id) is not None:
        raise HTTPException(status_code=409, detail="Pipeline already running")

    if not project.clips:
        raise HTTPException(status_code=400, detail="Project has no clips")

    missing = project.missing_prompt_indices()
    if missing:
        log.warning("generation_rejected_missing_prompts", project_id=project_id, clips=missing)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": f"{len(missing)} clip(s) missing prompts",
                "emptyClipIndices": missing,
            },
        )

    if not project.account_email:
        project.account_email = await _resolve_account_email(client)
        log.info("account_auto_selected", project_id=project_id, email=project.account_email)

    orchestrator = PipelineOrchestrator(
        project,
        client,
        store,
        PipelineConfig.from_env(),
        compiler=getattr(request.app.state, "video_compiler", None),
    )
    try:
        registry.start(orchestrator)
    except PipelineAlreadyRunningError as e:
        raise HTTPException(status_code=409, detail="Pipeline already running") from e

    log.info("generation_started", project_id=project_id, clips=len(project.clips))
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={"success": True, "message": "Pipeline started", "projectId": project_id},
    )


@router.post("/{project_id}/abort")
async def abort_generation(
    project_id: str,
    registry: PipelineRegistry = Depends(get_registry),
) -> JSONResponse:
    """Request a cooperative stop of the running batch (404 if none)."""
    orchestrator = registry.get(project_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail="No running pipeline")

    orchestrator.abort()
    log.info("generation_abort_requested", project_id=project_id)
    return JSONResponse(content={"success": True})


@router.post("/{project_id}/clips/{clip_index}/select-image")
async def select_image(
    project_id: str,
    clip_index: int,
    body: ImageSelection,
    store: ProjectStore = Depends(get_store),
    registry: PipelineRegistry = Depends(get_registry),
) -> JSONResponse:
    """Choose the image candidate of a clip.

    With a live batch this resolves the clip's pending review. Without one
    (e.g. after a restart), the choice is recorded on the stored clip, which
    must still be in reviewing_image.

    Returns:
        200 OK: Selection accepted
        400 Bad Request: Clip not awaiting review, or index out of range
        404 Not Found: Unknown project or clip
    """
    orchestrator = registry.get(project_id)
    if orchestrator is not None:
        try:
            orchestrator.select_image(clip_index, body.image_index)
        except ImageSelectionError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return JSONResponse(content={"success": True})

    project = await _load_project(store, project_id)
    clip = project.get_clip(clip_index)
    if clip is None:
        raise HTTPException(status_code=404, detail="Clip not found")
    if clip.status != ClipStatus.REVIEWING_IMAGE:
        raise HTTPException(
            status_code=400, detail=f"Clip {clip_index} is not awaiting image selection"
        )
    if body.image_index >= len(clip.generated_images):
        raise HTTPException(status_code=400, detail="Invalid image index")

    clip.selected_image_index = body.image_index
    await store.save(project)

    log.info(
        "image_selection_stored",
        project_id=project_id,
        clip_index=clip_index,
        image_index=body.image_index,
    )
    return JSONResponse(content={"success": True})


def _sse_message(event: PipelineEvent) -> str:
    return f"data: {event.to_wire()}\n\n"


@router.get("/{project_id}/status")
async def stream_status(
    project_id: str,
    request: Request,
    store: ProjectStore = Depends(get_store),
    registry: PipelineRegistry = Depends(get_registry),
) -> StreamingResponse:
    """Server-sent event stream of a project's progress."""
    orchestrator = registry.get(project_id)
    project = None if orchestrator is not None else await _load_project(store, project_id)
    keepalive = get_sse_keepalive_interval()

    async def event_stream() -> AsyncIterator[str]:
        if orchestrator is None:
            yield _sse_message(
                PipelineEvent(
                    type=PipelineEventType.INITIAL_STATE,
                    project_id=project_id,
                    data=project.to_snapshot(),
                )
            )
            if project.status == ProjectStatus.GENERATING:
                yield _sse_message(
                    PipelineEvent(type=PipelineEventType.NO_PIPELINE, project_id=project_id)
                )
            return

        subscription = orchestrator.event_bus.subscribe()
        log.info("progress_stream_opened", project_id=project_id)
        try:
            while True:
                try:
                    event = await asyncio.wait_for(subscription.get(), timeout=keepalive)
                except asyncio.TimeoutError:
                    if await request.is_disconnected():
                        break
                    yield ": keepalive\n\n"
                    continue

                if event is None:
                    break
                yield _sse_message(event)
                if event.type in FINAL_EVENT_TYPES:
                    break
        finally:
            orchestrator.event_bus.unsubscribe(subscription)
            log.info(
                "progress_stream_closed",
                project_id=project_id,
                dropped_events=subscription.dropped,
            )

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )

