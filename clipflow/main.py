"""FastAPI application for batch clip generation.

This is the web service entry point. It wires the project store, the
generation client and the pipeline registry onto app.state and mounts the
project and generation routes.
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

from clipflow.clients.generation import GenerationClient
from clipflow.config import get_generation_api_token
from clipflow.database import create_engine_and_session_factory, init_models
from clipflow.exceptions import ConfigurationError
from clipflow.routes import generation, projects
from clipflow.services.pipeline_registry import PipelineRegistry
from clipflow.services.project_store import ProjectStore

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup/shutdown of shared services.

    Startup:
    - Create the database engine and the projects table if missing
    - Initialize GenerationClient if GENERATION_API_TOKEN is set
    - Create the pipeline registry

    Shutdown:
    - Abort running batches and wait for them to settle
    - Close GenerationClient HTTP connections
    - Dispose of the database engine
    """
    # Startup
    engine, session_factory = create_engine_and_session_factory()
    if os.getenv("AUTO_CREATE_TABLES", "true").lower() == "true":
        await init_models(engine)

    generation_client = None
    try:
        generation_client = GenerationClient(auth_token=get_generation_api_token())
        log.info("generation_client_initialized", base_url=generation_client.base_url)
    except ConfigurationError:
        log.warning(
            "generation_disabled",
            message="GENERATION_API_TOKEN not set, batches cannot be started",
        )

    registry = PipelineRegistry()

    app.state.store = ProjectStore(session_factory)
    app.state.registry = registry
    app.state.generation_client = generation_client
    app.state.video_compiler = None

    yield  # Application runs here

    # Shutdown
    await registry.shutdown()
    if generation_client:
        await generation_client.close()
    await engine.dispose()


# Create FastAPI app with lifespan
app = FastAPI(
    title="Clipflow - Clip Generation Pipeline",
    description="Batch orchestration of image-to-video clip generation with live progress",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(projects.router)
app.include_router(generation.router)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check() -> JSONResponse:
    """Health check endpoint for deployment validation.

    Returns:
        JSONResponse: Status plus the number of running batches
    """
    registry = getattr(app.state, "registry", None)
    return JSONResponse(
        content={
            "status": "healthy",
            "service": "clipflow",
            "running_pipelines": len(registry) if registry is not None else 0,
        }
    )


@app.get("/", status_code=status.HTTP_200_OK)
async def root() -> JSONResponse:
    """Root endpoint with API information."""
    return JSONResponse(
        content={
            "service": "Clipflow - Clip Generation Pipeline",
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/health",
        }
    )


if __name__ == "__main__":
    import uvicorn

    # Binding to 0.0.0.0 is intentional for container deployments
    uvicorn.run(
        "clipflow.main:app",
        host="0.0.0.0",  # noqa: S104
        port=8000,
        reload=True,
    )
