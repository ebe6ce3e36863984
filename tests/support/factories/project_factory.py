"""Project data factories for test data generation.

Generates Project schema instances with deterministic prompts
("clip {i} image" / "clip {i} video") and override support.
"""

from clipflow.config import PipelineConfig
from clipflow.models import ClipStatus
from clipflow.schemas.project import Clip, Project, ProjectSettings


def create_clip(index: int, status: ClipStatus = ClipStatus.PENDING, **kwargs) -> Clip:
    """Create a Clip with prompts derived from its index."""
    return Clip(
        index=index,
        image_prompt=kwargs.pop("image_prompt", f"clip {index} image"),
        video_prompt=kwargs.pop("video_prompt", f"clip {index} video"),
        status=status,
        **kwargs,
    )


def create_project(
    clip_count: int = 3,
    review: bool = False,
    project_id: str = "proj_test",
    account_email: str | None = "creator@example.com",
    **kwargs,
) -> Project:
    """Create a Project with clip_count pending clips.

    Args:
        clip_count: Number of clips (indices 0..clip_count-1).
        review: Enable human image review (auto_pick_image=False).
        project_id: Project identifier.
        account_email: Generation account forwarded to the API.

    Example:
        >>> project = create_project(2, review=True)
    """
    return Project(
        id=project_id,
        name=kwargs.pop("name", "Test Project"),
        settings=ProjectSettings(auto_pick_image=not review),
        clips=kwargs.pop("clips", [create_clip(i) for i in range(clip_count)]),
        account_email=account_email,
        **kwargs,
    )


def fast_config(**overrides) -> PipelineConfig:
    """PipelineConfig with millisecond timings for tests."""
    values = {
        "max_concurrent_clips": 4,
        "review_candidate_count": 4,
        "review_timeout": 5.0,
        "video_poll_interval": 0.01,
        "video_job_timeout": 2.0,
        "event_queue_size": 1000,
    }
    values.update(overrides)
    return PipelineConfig(**values)
