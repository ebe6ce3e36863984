"""Business logic services for the clip generation pipeline."""

from clipflow.services.event_bus import EventBus, Subscription
from clipflow.services.job_poller import JobPoller
from clipflow.services.pipeline_orchestrator import PipelineOrchestrator
from clipflow.services.pipeline_registry import PipelineRegistry
from clipflow.services.project_store import ProjectStore
from clipflow.services.review_gate import ReviewGate

__all__ = [
    "EventBus",
    "JobPoller",
    "PipelineOrchestrator",
    "PipelineRegistry",
    "ProjectStore",
    "ReviewGate",
    "Subscription",
]
