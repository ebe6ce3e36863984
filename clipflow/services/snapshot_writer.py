"""Serialized, coalescing snapshot persistence for one project.

Every published event schedules a snapshot write. Writes for one project go
through a single writer task, so they never overlap and never land out of
order. While a write is in flight, newer snapshots replace each other and
only the latest one is written next.

Write failures are logged and do not interrupt the pipeline; the next
scheduled snapshot supersedes the failed one.
"""

import asyncio

from clipflow.schemas.project import Project
from clipflow.services.interfaces import ProjectStateStore
from clipflow.utils.logging import get_logger

log = get_logger(__name__)


class ProjectSnapshotWriter:
    """Single writer task per project id."""

    def __init__(self, store: ProjectStateStore, project_id: str) -> None:
        self.store = store
        self.project_id = project_id
        self._latest: Project | None = None
        self._task: asyncio.Task | None = None
        self.writes = 0

    def schedule(self, project: Project) -> None:
        """Queue a copy of project for writing. Returns immediately."""
        self._latest = project.model_copy(deep=True)
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        while self._latest is not None:
            snapshot, self._latest = self._latest, None
            try:
                await self.store.save(snapshot)
                self.writes += 1
            except Exception as e:
                log.error(
                    "snapshot_write_failed",
                    project_id=self.project_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def flush(self) -> None:
        """Wait until every scheduled snapshot has been written."""
        while self._task is not None and not self._task.done():
            await self._task
