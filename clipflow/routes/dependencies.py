"""Request-scoped access to the application's shared services.

The lifespan handler in clipflow.main stores the project store, the pipeline
registry and the generation client on app.state. Routes receive them through
these dependencies, so tests can install fakes on app.state directly.
"""

from fastapi import HTTPException, Request

from clipflow.services.interfaces import GenerationService
from clipflow.services.pipeline_registry import PipelineRegistry
from clipflow.services.project_store import ProjectStore


def get_store(request: Request) -> ProjectStore:
    return request.app.state.store


def get_registry(request: Request) -> PipelineRegistry:
    return request.app.state.registry


def get_generation_client(request: Request) -> GenerationService:
    """Generation client, or 503 when no API token is configured."""
    client = getattr(request.app.state, "generation_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Generation API token not configured")
    return client
