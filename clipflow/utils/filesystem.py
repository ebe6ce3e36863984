"""Filesystem path helpers for the clip media workspace.

This module provides standardized path construction for downloaded images and
videos. All directory helpers create the directory if it doesn't exist.

Security:
    Project IDs must be alphanumeric with optional underscores/dashes.
    Resolved paths are verified to stay within the workspace root.

Architecture Pattern:
    {WORKSPACE_ROOT}/projects/{project_id}/
    ├── images/   clip_{index}.jpg  (selected candidate)
    └── videos/   clip_{index}.mp4  (downloaded video result)

Usage:
    from clipflow.utils.filesystem import get_clip_image_path

    image_path = get_clip_image_path("proj_abc", 3)
"""

import re
from pathlib import Path

from clipflow.config import get_workspace_root

__all__ = [
    "IMAGE_DIR_NAME",
    "PROJECT_DIR_NAME",
    "VIDEO_DIR_NAME",
    "get_clip_image_path",
    "get_clip_video_path",
    "get_image_dir",
    "get_project_dir",
    "get_video_dir",
    "guess_image_content_type",
]

PROJECT_DIR_NAME = "projects"
IMAGE_DIR_NAME = "images"
VIDEO_DIR_NAME = "videos"

# Validation pattern: alphanumeric, underscores, dashes only
_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')


def _validate_identifier(identifier: str, name: str) -> None:
    """Validate identifier to prevent path traversal attacks.

    Raises:
        ValueError: If identifier is empty or contains other characters.
    """
    if not identifier:
        raise ValueError(f"{name} cannot be empty")

    if not _ID_PATTERN.match(identifier):
        raise ValueError(
            f"Invalid {name}: '{identifier}'. "
            f"Only alphanumeric characters, underscores, and dashes are allowed."
        )


def _verify_path_in_workspace(path: Path, workspace: Path) -> None:
    """Verify that resolved path stays within the workspace root.

    Raises:
        ValueError: If resolved path escapes the workspace.
    """
    resolved = path.resolve()
    workspace_resolved = workspace.resolve()

    if not resolved.is_relative_to(workspace_resolved):
        raise ValueError(
            f"Path traversal detected: resolved path '{resolved}' "
            f"is outside workspace '{workspace_resolved}'"
        )


def get_project_dir(project_id: str) -> Path:
    """Get the media directory for a project.

    Creates the directory if it doesn't exist.

    Args:
        project_id: Project identifier

    Returns:
        Path to {WORKSPACE_ROOT}/projects/{project_id}/

    Raises:
        ValueError: If project_id is invalid
    """
    _validate_identifier(project_id, "project_id")

    workspace = Path(get_workspace_root())
    path = workspace / PROJECT_DIR_NAME / project_id
    _verify_path_in_workspace(path, workspace)

    path.mkdir(parents=True, exist_ok=True)
    return path


def get_image_dir(project_id: str) -> Path:
    """Get (and create) the images directory of a project."""
    path = get_project_dir(project_id) / IMAGE_DIR_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_video_dir(project_id: str) -> Path:
    """Get (and create) the videos directory of a project."""
    path = get_project_dir(project_id) / VIDEO_DIR_NAME
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_clip_image_path(project_id: str, clip_index: int) -> Path:
    """Local path of the selected image for a clip.

    Example:
        >>> get_clip_image_path("proj_abc", 3)
        PosixPath('workspace/projects/proj_abc/images/clip_03.jpg')
    """
    return get_image_dir(project_id) / f"clip_{clip_index:02d}.jpg"


def get_clip_video_path(project_id: str, clip_index: int) -> Path:
    """Local path of the downloaded video for a clip."""
    return get_video_dir(project_id) / f"clip_{clip_index:02d}.mp4"


def guess_image_content_type(path: Path) -> str:
    """Content type for an image upload, based on the file extension."""
    return "image/png" if path.suffix.lower() == ".png" else "image/jpeg"
