"""Repository for records that reference projects (planning items, issue links)."""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.commander.models import IssueLink, PlanningItem

DEPENDENT_MODELS: tuple[type[PlanningItem] | type[IssueLink], ...] = (PlanningItem, IssueLink)


class DependentRepository:
    """Bulk operations over every table that references ``projects.id``."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def detach_projects(self, project_ids: Sequence[UUID]) -> int:
        """Null the project reference on all dependents of the given projects.

        Returns the number of dependent rows detached.
        """
        if not project_ids:
            return 0
        detached = 0
        for model in DEPENDENT_MODELS:
            result = await self.session.execute(
                update(model)
                .where(model.project_id.in_(project_ids))  # type: ignore[union-attr]
                .values(project_id=None)
            )
            detached += result.rowcount or 0
        return detached

    async def delete_all(self) -> int:
        """Hard-delete every dependent row. Returns the number of rows removed."""
        removed = 0
        for model in DEPENDENT_MODELS:
            result = await self.session.execute(delete(model))
            removed += result.rowcount or 0
        return removed
