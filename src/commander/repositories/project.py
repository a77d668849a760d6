"""Repository for Project entity."""

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func
from sqlmodel import select

from src.commander.models import Project
from src.commander.repositories.base import BaseRepository


class ProjectRepository(BaseRepository[Project]):
    """Repository for Project rows."""

    model = Project

    async def list_active(self) -> list[Project]:
        """List active projects in manual order."""
        result = await self.session.execute(
            select(Project)
            .where(Project.is_archived == False)  # noqa: E712
            .order_by(Project.sort_order, Project.name)
        )
        return list(result.scalars().all())

    async def list_archived(self) -> list[Project]:
        """List archived projects by name."""
        result = await self.session.execute(
            select(Project)
            .where(Project.is_archived == True)  # noqa: E712
            .order_by(Project.name)
        )
        return list(result.scalars().all())

    async def get_active_by_path(self, path: str) -> Project | None:
        """Get the active project at a path."""
        result = await self.session.execute(
            select(Project).where(
                Project.path == path,
                Project.is_archived == False,  # noqa: E712
            )
        )
        return result.scalar_one_or_none()

    async def get_active_by_identity_key(self, identity_key: str) -> Project | None:
        """Get the active project holding an identity key."""
        result = await self.session.execute(
            select(Project).where(
                Project.identity_key == identity_key,
                Project.is_archived == False,  # noqa: E712
            )
        )
        return result.scalar_one_or_none()

    async def next_sort_order(self) -> int:
        """Sort order for the next inserted row (max over all rows + 1)."""
        result = await self.session.execute(select(func.max(Project.sort_order)))
        current = result.scalar_one_or_none()
        return 0 if current is None else current + 1

    def archive(self, project: Project, archived_at: datetime) -> None:
        """Soft-delete a project (no flush/commit)."""
        project.is_archived = True
        project.archived_at = archived_at

    def unarchive(self, project: Project) -> None:
        """Reactivate an archived project (no flush/commit)."""
        project.is_archived = False
        project.archived_at = None

    async def archived_ids(self) -> list[UUID]:
        """Ids of all archived projects."""
        result = await self.session.execute(
            select(Project.id).where(Project.is_archived == True)  # noqa: E712
        )
        return list(result.scalars().all())

    async def delete_by_ids(self, ids: Sequence[UUID]) -> int:
        """Hard-delete projects by id. Returns the number of rows removed."""
        if not ids:
            return 0
        result = await self.session.execute(delete(Project).where(Project.id.in_(ids)))  # type: ignore[attr-defined]
        return result.rowcount or 0

    async def delete_all(self) -> int:
        """Hard-delete every project. Returns the number of rows removed."""
        result = await self.session.execute(delete(Project))
        return result.rowcount or 0
