"""Project model - one row per tracked development directory."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, Index, text
from sqlmodel import Field, SQLModel

from src.commander.models.base import utc_now
from src.commander.models.enums import ProjectState


class Project(SQLModel, table=True):
    """Tracked project directory.

    Uniqueness of ``path`` and ``identity_key`` only holds among active rows;
    archived rows keep their last-known values and may repeat them.
    """

    __tablename__ = "projects"
    __table_args__ = (
        Index(
            "uq_projects_active_path",
            "path",
            unique=True,
            sqlite_where=text("is_archived = 0"),
            postgresql_where=text("NOT is_archived"),
        ),
        Index(
            "uq_projects_active_identity_key",
            "identity_key",
            unique=True,
            sqlite_where=text("is_archived = 0 AND identity_key IS NOT NULL"),
            postgresql_where=text("NOT is_archived AND identity_key IS NOT NULL"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(max_length=255, index=True)
    path: str = Field(index=True)
    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    color: str | None = Field(default=None, max_length=32)
    identity_key: str | None = Field(default=None, index=True)
    sort_order: int = Field(default=0)
    is_archived: bool = Field(default=False, index=True)
    archived_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def state(self) -> ProjectState:
        """Get lifecycle state as ProjectState enum."""
        return ProjectState.ARCHIVED if self.is_archived else ProjectState.ACTIVE
