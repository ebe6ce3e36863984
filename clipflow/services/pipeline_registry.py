"""Registry of live orchestrators, keyed by project id.

The web application owns one PipelineRegistry (on app.state). It guarantees
at most one orchestrator per project id, runs each batch as a background
task and drops the entry once the batch settles, closing its event bus so
open progress streams end.
"""

import asyncio

from clipflow.exceptions import PipelineAlreadyRunningError
from clipflow.services.pipeline_orchestrator import PipelineOrchestrator
from clipflow.utils.logging import get_logger

log = get_logger(__name__)


class PipelineRegistry:
    """Process-local map of project id to running orchestrator."""

    def __init__(self) -> None:
        self._pipelines: dict[str, PipelineOrchestrator] = {}
        self._tasks: dict[str, asyncio.Task] = {}

    def __len__(self) -> int:
        return len(self._pipelines)

    def get(self, project_id: str) -> PipelineOrchestrator | None:
        return self._pipelines.get(project_id)

    def start(self, orchestrator: PipelineOrchestrator) -> asyncio.Task:
        """Register orchestrator and run its batch in the background.

        Raises:
            PipelineAlreadyRunningError: A batch is already registered for
                this project id
        """
        project_id = orchestrator.project.id
        if project_id in self._pipelines:
            raise PipelineAlreadyRunningError(project_id)

        self._pipelines[project_id] = orchestrator
        task = asyncio.create_task(self._run(orchestrator), name=f"pipeline-{project_id}")
        self._tasks[project_id] = task
        return task

    async def _run(self, orchestrator: PipelineOrchestrator) -> None:
        project_id = orchestrator.project.id
        try:
            await orchestrator.run()
        except Exception as e:
            log.error(
                "pipeline_crashed",
                exc_info=True,
                project_id=project_id,
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            self._pipelines.pop(project_id, None)
            self._tasks.pop(project_id, None)
            orchestrator.event_bus.close()

    async def shutdown(self) -> None:
        """Abort every running batch and wait for them to settle."""
        tasks = list(self._tasks.values())
        for orchestrator in list(self._pipelines.values()):
            orchestrator.abort()
        if tasks:
            log.info("pipelines_shutting_down", count=len(tasks))
            await asyncio.gather(*tasks, return_exceptions=True)
