"""Dependent records that reference a project by id.

Both tables hold a nullable ``project_id``: purging a project detaches its
dependents instead of deleting them.
"""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Column, ForeignKey, Uuid
from sqlmodel import Field, SQLModel

from src.commander.models.base import utc_now
from src.commander.models.enums import PlanningStatus


class PlanningItem(SQLModel, table=True):
    """Kanban planning item."""

    __tablename__ = "planning_items"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID | None = Field(
        default=None,
        sa_column=Column(
            Uuid(), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True
        ),
    )
    subject: str = Field(max_length=500)
    description: str | None = Field(default=None)
    status: str = Field(default=PlanningStatus.BACKLOG.value)
    priority: int = Field(default=0)
    sort_order: int = Field(default=0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def status_enum(self) -> PlanningStatus:
        """Get status as PlanningStatus enum."""
        return PlanningStatus(self.status)


class IssueLink(SQLModel, table=True):
    """Link between a project and an issue in a remote tracker."""

    __tablename__ = "issue_links"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    project_id: UUID | None = Field(
        default=None,
        sa_column=Column(
            Uuid(), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True
        ),
    )
    repository: str = Field(max_length=255)
    issue_number: int
    title: str | None = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=utc_now)
