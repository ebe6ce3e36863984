"""Configuration management for the clip generation service.

This module provides centralized configuration loading from environment variables.
Values that must stay stable for the life of the process are cached.

Environment Variables:
    DATABASE_URL: Project store connection URL (default: local SQLite file)
    GENERATION_API_TOKEN: Bearer token for the generation API (required to generate)
    GENERATION_API_BASE_URL: Base URL of the generation API
    WORKSPACE_ROOT: Base path for downloaded images and videos
    MAX_CONCURRENT_CLIPS: Per-batch worker pool size

Usage:
    from clipflow.config import get_database_url, get_generation_api_token

    db_url = get_database_url()
    token = get_generation_api_token()  # Raises ConfigurationError if not set
"""

import os
from dataclasses import dataclass
from functools import lru_cache

import structlog

from clipflow.exceptions import ConfigurationError

log = structlog.get_logger(__name__)

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./clipflow.db"
DEFAULT_GENERATION_API_BASE_URL = "https://api.useapi.net"
DEFAULT_IMAGE_MODEL = "nano-banana-pro"
DEFAULT_VIDEO_MODEL = "veo-3.1-fast"

# Pipeline timing defaults (seconds)
DEFAULT_VIDEO_POLL_INTERVAL = 10.0
DEFAULT_VIDEO_JOB_TIMEOUT = 600.0  # 10 minutes per video job
DEFAULT_REVIEW_TIMEOUT = 600.0  # 10 minutes before auto-picking candidate 0

# Parallelism and fan-out defaults
DEFAULT_MAX_CONCURRENT_CLIPS = 4
DEFAULT_REVIEW_CANDIDATE_COUNT = 4
DEFAULT_EVENT_QUEUE_SIZE = 256

# Retry defaults for the generation API request layer
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_BASE_DELAY = 6.0
DEFAULT_RETRY_MAX_DELAY = 30.0
DEFAULT_RATE_LIMIT = 5


@lru_cache
def get_database_url() -> str:
    """Get database URL from environment.

    Converts postgresql:// to postgresql+asyncpg:// for async SQLAlchemy.
    Falls back to a local SQLite file so a single-process deployment works
    without a database server.

    Environment Variable:
        DATABASE_URL: Database connection URL

    Returns:
        Database URL with an async driver.
    """
    url = os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)

    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return url


def get_generation_api_token() -> str:
    """Get the generation API bearer token.

    Environment Variable:
        GENERATION_API_TOKEN: Bearer token for the generation API

    Returns:
        Token string.

    Raises:
        ConfigurationError: If GENERATION_API_TOKEN is not set.
    """
    token = os.getenv("GENERATION_API_TOKEN")
    if not token:
        raise ConfigurationError("GENERATION_API_TOKEN environment variable is required")
    return token


def get_generation_api_base_url() -> str:
    """Get the generation API base URL (default: https://api.useapi.net)."""
    return os.getenv("GENERATION_API_BASE_URL", DEFAULT_GENERATION_API_BASE_URL).rstrip("/")


def get_workspace_root() -> str:
    """Get workspace root directory from environment.

    Environment Variable:
        WORKSPACE_ROOT: Base path for downloaded media (default: "./workspace")

    Returns:
        Directory path string.
    """
    return os.getenv("WORKSPACE_ROOT", "./workspace")


def get_image_model() -> str:
    """Get the image generation model name."""
    return os.getenv("IMAGE_MODEL", DEFAULT_IMAGE_MODEL)


def get_video_model() -> str:
    """Get the video generation model name."""
    return os.getenv("VIDEO_MODEL", DEFAULT_VIDEO_MODEL)


def _get_float(name: str, default: float, minimum: float, maximum: float) -> float:
    """Read a float setting, clamped to [minimum, maximum].

    Invalid values fall back to the default with a warning.
    """
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning("invalid_config_value", name=name, value=raw, using_default=default)
        return default
    return max(minimum, min(maximum, value))


def _get_int(name: str, default: int, minimum: int, maximum: int) -> int:
    """Read an integer setting, clamped to [minimum, maximum]."""
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        log.warning("invalid_config_value", name=name, value=raw, using_default=default)
        return default
    return max(minimum, min(maximum, value))


def get_video_poll_interval() -> float:
    """Get seconds between video job status queries.

    Environment Variable:
        VIDEO_POLL_INTERVAL_SECONDS: Poll interval (default: 10, range 1-120)
    """
    return _get_float("VIDEO_POLL_INTERVAL_SECONDS", DEFAULT_VIDEO_POLL_INTERVAL, 1.0, 120.0)


def get_video_job_timeout() -> float:
    """Get maximum seconds to wait for one video job.

    Environment Variable:
        VIDEO_JOB_TIMEOUT_SECONDS: Timeout measured from the first poll
            (default: 600, range 30-3600)
    """
    return _get_float("VIDEO_JOB_TIMEOUT_SECONDS", DEFAULT_VIDEO_JOB_TIMEOUT, 30.0, 3600.0)


def get_review_timeout() -> float:
    """Get seconds a clip waits for a human image selection.

    When the timeout elapses the first candidate is used, so a batch always
    makes progress even with nobody watching.

    Environment Variable:
        REVIEW_TIMEOUT_SECONDS: Review wait (default: 600, range 10-86400)
    """
    return _get_float("REVIEW_TIMEOUT_SECONDS", DEFAULT_REVIEW_TIMEOUT, 10.0, 86400.0)


def get_max_concurrent_clips() -> int:
    """Get the per-batch clip worker pool size.

    Limits how many clip workflows of one project talk to the generation API
    at the same time. Independent of the number of clips in the project.

    Environment Variable:
        MAX_CONCURRENT_CLIPS: Maximum parallel clip workflows (default: 4, range 1-32)
    """
    return _get_int("MAX_CONCURRENT_CLIPS", DEFAULT_MAX_CONCURRENT_CLIPS, 1, 32)


def get_review_candidate_count() -> int:
    """Get number of image candidates requested when review is enabled (default: 4)."""
    return _get_int("REVIEW_CANDIDATE_COUNT", DEFAULT_REVIEW_CANDIDATE_COUNT, 2, 8)


def get_event_queue_size() -> int:
    """Get the per-subscriber progress event queue bound (default: 256)."""
    return _get_int("EVENT_QUEUE_SIZE", DEFAULT_EVENT_QUEUE_SIZE, 16, 10_000)


def get_sse_keepalive_interval() -> float:
    """Get seconds between keep-alive comments on the progress stream (default: 15)."""
    return _get_float("SSE_KEEPALIVE_SECONDS", 15.0, 1.0, 300.0)


def get_generation_max_retries() -> int:
    """Get retry attempts for retriable generation API failures (default: 3)."""
    return _get_int("GENERATION_MAX_RETRIES", DEFAULT_MAX_RETRIES, 0, 10)


def get_generation_retry_base_delay() -> float:
    """Get base backoff delay in seconds for generation API retries (default: 6)."""
    return _get_float("GENERATION_RETRY_BASE_DELAY", DEFAULT_RETRY_BASE_DELAY, 0.0, 120.0)


def get_generation_retry_max_delay() -> float:
    """Get maximum backoff delay in seconds for generation API retries (default: 30)."""
    return _get_float("GENERATION_RETRY_MAX_DELAY", DEFAULT_RETRY_MAX_DELAY, 0.0, 600.0)


def get_generation_rate_limit() -> int:
    """Get allowed generation API requests per second (default: 5)."""
    return _get_int("GENERATION_API_RATE_LIMIT", DEFAULT_RATE_LIMIT, 1, 100)


@dataclass(frozen=True)
class PipelineConfig:
    """Tunables of one batch run, resolved once when the batch starts.

    Attributes:
        max_concurrent_clips: Worker pool size (clip workflows in flight)
        review_candidate_count: Candidates requested when review is enabled
        review_timeout: Seconds before a review defaults to candidate 0
        video_poll_interval: Seconds between video job status queries
        video_job_timeout: Seconds before a video job is abandoned
        event_queue_size: Per-subscriber event queue bound
    """

    max_concurrent_clips: int = DEFAULT_MAX_CONCURRENT_CLIPS
    review_candidate_count: int = DEFAULT_REVIEW_CANDIDATE_COUNT
    review_timeout: float = DEFAULT_REVIEW_TIMEOUT
    video_poll_interval: float = DEFAULT_VIDEO_POLL_INTERVAL
    video_job_timeout: float = DEFAULT_VIDEO_JOB_TIMEOUT
    event_queue_size: int = DEFAULT_EVENT_QUEUE_SIZE

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        return cls(
            max_concurrent_clips=get_max_concurrent_clips(),
            review_candidate_count=get_review_candidate_count(),
            review_timeout=get_review_timeout(),
            video_poll_interval=get_video_poll_interval(),
            video_job_timeout=get_video_job_timeout(),
            event_queue_size=get_event_queue_size(),
        )
