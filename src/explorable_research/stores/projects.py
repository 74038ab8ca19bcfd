"""Document store for the ``projects`` collection."""

from enum import Enum
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from ..models import Project, ProjectStatus
from ..schemas.project import ProjectRecord

logger = structlog.get_logger()

UPDATABLE_FIELDS = frozenset(
    {"title", "description", "template", "status", "error_message", "fragment", "result", "messages"}
)


class ProjectStore:
    """CRUD over projects, always scoped to the owning user.

    Every method commits its own single-row statement.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def insert(
        self,
        user_id: str,
        *,
        title: str = "Untitled Project",
        description: str | None = None,
        template: str | None = None,
        status: ProjectStatus = ProjectStatus.CREATED,
        fragment: dict | None = None,
        result: dict | None = None,
        messages: list | None = None,
    ) -> ProjectRecord:
        project = Project(
            user_id=user_id,
            title=title,
            description=description,
            template=template,
            status=status.value,
            fragment=fragment,
            result=result,
            messages=messages,
        )
        async with self._session_maker() as session:
            session.add(project)
            await session.commit()
            await session.refresh(project)
            record = ProjectRecord.model_validate(project)

        logger.info("project_created", project_id=record.id, status=record.status.value)
        return record

    async def get(self, project_id: str, user_id: str) -> ProjectRecord | None:
        async with self._session_maker() as session:
            query = select(Project).where(Project.id == project_id, Project.user_id == user_id)
            project = (await session.execute(query)).scalar_one_or_none()
            return ProjectRecord.model_validate(project) if project else None

    async def list_for_user(self, user_id: str) -> list[ProjectRecord]:
        async with self._session_maker() as session:
            query = (
                select(Project)
                .where(Project.user_id == user_id)
                .order_by(Project.created_at.desc())
            )
            projects = (await session.execute(query)).scalars().all()
            return [ProjectRecord.model_validate(p) for p in projects]

    async def update(self, project_id: str, **fields: Any) -> None:
        """Write the given columns of one project."""
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update project fields: {sorted(unknown)}")

        values = {k: v.value if isinstance(v, Enum) else v for k, v in fields.items()}
        async with self._session_maker() as session:
            await session.execute(update(Project).where(Project.id == project_id).values(**values))
            await session.commit()

        if "status" in values:
            logger.info("project_status_updated", project_id=project_id, status=values["status"])

    async def delete(self, project_id: str, user_id: str) -> bool:
        async with self._session_maker() as session:
            result = await session.execute(
                delete(Project).where(Project.id == project_id, Project.user_id == user_id)
            )
            await session.commit()
        deleted = result.rowcount > 0
        if deleted:
            logger.info("project_deleted", project_id=project_id)
        return deleted

    async def claim_ready(self, project_id: str, user_id: str) -> bool:
        """Move a ready project back to ``created`` for a continuation.

        Returns False when the project is no longer ready, so only one of two
        concurrent continuations can proceed.
        """
        async with self._session_maker() as session:
            result = await session.execute(
                update(Project)
                .where(
                    Project.id == project_id,
                    Project.user_id == user_id,
                    Project.status == ProjectStatus.READY.value,
                )
                .values(status=ProjectStatus.CREATED.value, error_message=None)
            )
            await session.commit()
        return result.rowcount == 1
