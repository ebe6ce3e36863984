"""Pydantic schemas for validation and serialization."""

from clipflow.schemas.events import PipelineEvent, PipelineEventType
from clipflow.schemas.project import (
    Clip,
    ClipCreate,
    GeneratedImage,
    ImageSelection,
    Project,
    ProjectCreate,
    ProjectSettings,
)

__all__ = [
    "Clip",
    "ClipCreate",
    "GeneratedImage",
    "ImageSelection",
    "PipelineEvent",
    "PipelineEventType",
    "Project",
    "ProjectCreate",
    "ProjectSettings",
]
