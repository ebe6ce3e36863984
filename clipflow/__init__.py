"""Clip generation pipeline orchestrator.

This package drives batches of short video clips through a remote generation
API: image generation, optional human review, asset upload and video jobs.
Progress is streamed to observers as events and the latest project state is
kept in a SQL store.
"""

from clipflow.models import Base, ClipStatus, ProjectStatus

__all__ = [
    "Base",
    "ClipStatus",
    "ProjectStatus",
]
