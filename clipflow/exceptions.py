"""Shared exceptions for the application.

This module contains exception classes used across the pipeline services,
the generation client and the web layer, so that none of them has to import
another's internals just to catch an error.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from clipflow.models import ClipStatus


class ConfigurationError(Exception):
    """Raised when required configuration is missing.

    Example: GENERATION_API_TOKEN is not set but a batch was started.
    """

    pass


class InvalidStateTransitionError(Exception):
    """Raised when a clip is moved along a transition its state machine forbids.

    Only transitions listed in Clip.VALID_TRANSITIONS are allowed. The failure
    shortcut (any active state -> failed) is listed there explicitly.

    Attributes:
        from_status: The ClipStatus before the attempted transition.
        to_status: The ClipStatus that was attempted.

    Example:
        >>> clip.status = ClipStatus.PENDING
        >>> clip.transition_to(ClipStatus.COMPLETED)
        InvalidStateTransitionError: Invalid transition: pending → completed
    """

    def __init__(self, message: str, from_status: "ClipStatus", to_status: "ClipStatus"):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message)

    def __str__(self) -> str:
        base_message = super().__str__()
        return f"{base_message} (from={self.from_status.value}, to={self.to_status.value})"


class PipelineAlreadyRunningError(Exception):
    """Raised when a batch is started on an orchestrator that is already running."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Pipeline already running for project {project_id}")


class PipelineAbortedError(Exception):
    """Raised at a cooperative checkpoint after abort() was requested."""

    def __init__(self, message: str = "Pipeline aborted"):
        super().__init__(message)


class ImageSelectionError(ValueError):
    """Raised for an invalid image selection request.

    Either the clip is not currently awaiting review, or the candidate index
    is out of range.
    """

    pass


class JobFailedError(Exception):
    """Raised when a remote job reports a terminal failure status.

    This is fatal for the owning clip and is never retried by the poller.
    """

    def __init__(self, job_id: str, remote_error: str):
        self.job_id = job_id
        self.remote_error = remote_error
        super().__init__(f"Job {job_id} failed: {remote_error}")


class JobTimeoutError(Exception):
    """Raised when a remote job does not reach a terminal status in time."""

    def __init__(self, job_id: str, timeout: float):
        self.job_id = job_id
        self.timeout = timeout
        super().__init__(f"Job {job_id} polling timeout after {timeout:g}s")


class ClipStepError(Exception):
    """Raised when a remote step succeeds but its result cannot be used.

    Examples: an image request that returned no candidates, or a completed
    video job without a download URL.
    """

    pass
