"""SQL-backed project store.

Keeps the latest snapshot of each project in the `projects` table. The
snapshot is the whole Project schema serialized as camelCase JSON, the same
shape subscribers receive in `initial_state`.

Usage:
    engine, session_factory = create_engine_and_session_factory()
    store = ProjectStore(session_factory)
    await store.save(project)
    project = await store.get("proj_abc")
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clipflow.models import ProjectRecord, utcnow
from clipflow.schemas.project import Project
from clipflow.utils.logging import get_logger

log = get_logger(__name__)


class ProjectStore:
    """Durable ProjectStateStore on an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def save(self, project: Project) -> None:
        """Insert or replace the stored snapshot of project."""
        snapshot = project.to_snapshot()

        async with self.session_factory() as session, session.begin():
            record = await session.get(ProjectRecord, project.id)
            if record is None:
                session.add(
                    ProjectRecord(
                        id=project.id,
                        name=project.name,
                        status=project.status.value,
                        snapshot=snapshot,
                        created_at=project.created_at,
                    )
                )
            else:
                record.name = project.name
                record.status = project.status.value
                record.snapshot = snapshot
                record.updated_at = utcnow()

        log.debug("project_saved", project_id=project.id, status=project.status.value)

    async def get(self, project_id: str) -> Project | None:
        """Load the latest snapshot, or None if the project does not exist."""
        async with self.session_factory() as session:
            record = await session.get(ProjectRecord, project_id)
            if record is None:
                return None
            return Project.model_validate(record.snapshot)

    async def list_projects(self, limit: int = 50, offset: int = 0) -> list[Project]:
        """List projects, newest first."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(ProjectRecord)
                .order_by(ProjectRecord.created_at.desc())
                .limit(limit)
                .offset(offset)
            )
            return [Project.model_validate(record.snapshot) for record in result.scalars()]

    async def delete(self, project_id: str) -> bool:
        """Delete a project. Returns False when it did not exist."""
        async with self.session_factory() as session, session.begin():
            record = await session.get(ProjectRecord, project_id)
            if record is None:
                return False
            await session.delete(record)

        log.info("project_deleted", project_id=project_id)
        return True
