"""Tests for custom exception classes.

Tests cover:
- Message formatting of pipeline exceptions
- Attributes carried for callers (job ids, statuses)
- Inheritance used by the web layer to map errors to status codes
"""

import pytest

from clipflow.exceptions import (
    ConfigurationError,
    ImageSelectionError,
    InvalidStateTransitionError,
    JobFailedError,
    JobTimeoutError,
    PipelineAbortedError,
    PipelineAlreadyRunningError,
)
from clipflow.models import ClipStatus


class TestConfigurationError:
    """Tests for ConfigurationError exception (P2 - Medium priority)."""

    def test_configuration_error_message_is_preserved(self) -> None:
        """[P2] Test ConfigurationError preserves error message."""
        with pytest.raises(ConfigurationError) as exc_info:
            raise ConfigurationError("GENERATION_API_TOKEN missing")

        assert str(exc_info.value) == "GENERATION_API_TOKEN missing"


class TestInvalidStateTransitionError:
    def test_str_includes_both_statuses(self) -> None:
        """[P1] Message names the source and target statuses."""
        error = InvalidStateTransitionError(
            "Invalid transition: pending → completed",
            from_status=ClipStatus.PENDING,
            to_status=ClipStatus.COMPLETED,
        )

        assert error.from_status == ClipStatus.PENDING
        assert error.to_status == ClipStatus.COMPLETED
        assert str(error) == (
            "Invalid transition: pending → completed (from=pending, to=completed)"
        )


class TestJobErrors:
    def test_job_failed_error_carries_remote_error(self) -> None:
        error = JobFailedError("video-job-1", "content policy violation")

        assert error.job_id == "video-job-1"
        assert error.remote_error == "content policy violation"
        assert str(error) == "Job video-job-1 failed: content policy violation"

    def test_job_timeout_error_formats_seconds(self) -> None:
        error = JobTimeoutError("video-job-1", 600.0)

        assert error.timeout == 600.0
        assert str(error) == "Job video-job-1 polling timeout after 600s"


class TestPipelineErrors:
    def test_aborted_default_message(self) -> None:
        """[P1] The default message is what gets recorded on aborted clips."""
        assert str(PipelineAbortedError()) == "Pipeline aborted"

    def test_already_running_names_project(self) -> None:
        error = PipelineAlreadyRunningError("proj_abc")

        assert error.project_id == "proj_abc"
        assert "proj_abc" in str(error)

    def test_image_selection_error_is_value_error(self) -> None:
        """[P2] Selection errors are client input errors."""
        assert issubclass(ImageSelectionError, ValueError)
