"""Project routes.

This module provides FastAPI routes for managing projects:
- POST /api/projects - Create a project with its clips
- GET /api/projects - List projects (newest first)
- GET /api/projects/{project_id} - Get one project
- DELETE /api/projects/{project_id} - Delete a project that is not generating
"""

import uuid

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from clipflow.routes.dependencies import get_registry, get_store
from clipflow.schemas.project import Clip, Project, ProjectCreate
from clipflow.services.pipeline_registry import PipelineRegistry
from clipflow.services.project_store import ProjectStore

log = structlog.get_logger()
router = APIRouter(prefix="/api/projects", tags=["projects"])


def _new_project_id() -> str:
    return f"proj_{uuid.uuid4().hex[:12]}"


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    store: ProjectStore = Depends(get_store),
) -> JSONResponse:
    """Create a project. Clip indices follow the order of body.clips."""
    project = Project(
        id=_new_project_id(),
        name=body.name,
        settings=body.settings,
        account_email=body.account_email,
        clips=[
            Clip(index=i, image_prompt=clip.image_prompt, video_prompt=clip.video_prompt)
            for i, clip in enumerate(body.clips)
        ],
    )
    await store.save(project)

    log.info("project_created", project_id=project.id, clips=len(project.clips))
    return JSONResponse(status_code=status.HTTP_201_CREATED, content=project.to_snapshot())


@router.get("")
async def list_projects(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    store: ProjectStore = Depends(get_store),
) -> JSONResponse:
    projects = await store.list_projects(limit=limit, offset=offset)
    return JSONResponse(content=[project.to_snapshot() for project in projects])


@router.get("/{project_id}")
async def get_project(
    project_id: str,
    store: ProjectStore = Depends(get_store),
) -> JSONResponse:
    project = await store.get(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return JSONResponse(content=project.to_snapshot())


@router.delete("/{project_id}")
async def delete_project(
    project_id: str,
    store: ProjectStore = Depends(get_store),
    registry: PipelineRegistry = Depends(get_registry),
) -> JSONResponse:
    """Delete a project.

    Returns:
        200 OK: Project deleted
        404 Not Found: Unknown project
        409 Conflict: A batch is running for the project
    """
    if registry.get(project_id) is not None:
        raise HTTPException(status_code=409, detail="Pipeline is running for this project")

    if not await store.delete(project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    log.info("project_deleted", project_id=project_id)
    return JSONResponse(content={"success": True})
