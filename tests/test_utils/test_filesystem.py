"""
Unit tests for clipflow/utils/filesystem.py path helpers.

Tests verify:
- Directory auto-creation (parents=True, exist_ok=True)
- Path object return types (pathlib.Path)
- Per-project isolation
- Path traversal rejection
- Clip file naming
"""

from pathlib import Path

import pytest

from clipflow.utils.filesystem import (
    IMAGE_DIR_NAME,
    PROJECT_DIR_NAME,
    VIDEO_DIR_NAME,
    get_clip_image_path,
    get_clip_video_path,
    get_image_dir,
    get_project_dir,
    get_video_dir,
    guess_image_content_type,
)


class TestProjectDir:
    def test_creates_directory_under_workspace(self, workspace: Path):
        path = get_project_dir("proj_abc")

        assert isinstance(path, Path)
        assert path == workspace / PROJECT_DIR_NAME / "proj_abc"
        assert path.is_dir()

    def test_idempotent(self, workspace: Path):
        assert get_project_dir("proj_abc") == get_project_dir("proj_abc")

    def test_projects_are_isolated(self, workspace: Path):
        image_a = get_image_dir("proj_a")
        image_b = get_image_dir("proj_b")

        assert image_a != image_b
        assert image_a.parent.name == "proj_a"
        assert image_b.parent.name == "proj_b"

    @pytest.mark.parametrize("project_id", ["", "../escape", "proj/abc", "proj abc", ".."])
    def test_rejects_invalid_identifiers(self, project_id: str):
        with pytest.raises(ValueError):
            get_project_dir(project_id)


class TestMediaDirs:
    def test_image_and_video_dirs_created(self, workspace: Path):
        image_dir = get_image_dir("proj_abc")
        video_dir = get_video_dir("proj_abc")

        assert image_dir.name == IMAGE_DIR_NAME
        assert video_dir.name == VIDEO_DIR_NAME
        assert image_dir.is_dir()
        assert video_dir.is_dir()

    def test_clip_paths_are_zero_padded(self, workspace: Path):
        assert get_clip_image_path("proj_abc", 3).name == "clip_03.jpg"
        assert get_clip_video_path("proj_abc", 12).name == "clip_12.mp4"
        assert get_clip_video_path("proj_abc", 0).parent == get_video_dir("proj_abc")

    def test_clip_paths_do_not_create_files(self, workspace: Path):
        assert not get_clip_image_path("proj_abc", 0).exists()


@pytest.mark.parametrize(
    "name, expected",
    [("clip_00.jpg", "image/jpeg"), ("clip_00.PNG", "image/png"), ("clip", "image/jpeg")],
)
def test_guess_image_content_type(name: str, expected: str):
    assert guess_image_content_type(Path(name)) == expected
