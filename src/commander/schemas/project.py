"""Project schemas for scanning, reconciliation and API request/response."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.commander.core.validators import normalize_project_path


def normalize_tags(tags: list[str]) -> list[str]:
    """Strip and deduplicate tags, keeping first-occurrence order."""
    seen: dict[str, None] = {}
    for tag in tags:
        tag = tag.strip()
        if tag:
            seen.setdefault(tag, None)
    return list(seen)


class Candidate(BaseModel):
    """One scanner-produced directory description."""

    path: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    tags: list[str] = Field(default_factory=list)
    color: str | None = Field(default=None, max_length=32)
    identity_key: str | None = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Candidate path cannot be empty")
        return normalize_project_path(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name cannot be empty or whitespace only")
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)

    @field_validator("identity_key")
    @classmethod
    def validate_identity_key(cls, v: str | None) -> str | None:
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v


class ProjectRead(BaseModel):
    """Schema for reading a project."""

    id: UUID
    name: str
    path: str
    tags: list[str]
    color: str | None
    identity_key: str | None
    sort_order: int
    is_archived: bool
    archived_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ScanWarning(BaseModel):
    """Non-fatal problem with a single directory; the batch continues."""

    path: str
    reason: str


class ScanReport(BaseModel):
    """Result of a dry-run scan."""

    root: str
    candidates: list[Candidate] = Field(default_factory=list)
    warnings: list[ScanWarning] = Field(default_factory=list)


class SyncConflict(BaseModel):
    """A candidate whose write was rejected because it collides with another row."""

    path: str
    field: str
    value: str
    project_id: UUID | None = None
    existing_id: UUID


class SyncResult(BaseModel):
    """Diff applied by one reconciliation run."""

    added: list[ProjectRead] = Field(default_factory=list)
    updated: list[ProjectRead] = Field(default_factory=list)
    archived_count: int = 0
    unchanged_count: int = 0
    conflicts: list[SyncConflict] = Field(default_factory=list)
    warnings: list[ScanWarning] = Field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not (self.added or self.updated or self.archived_count)


class ImportResult(BaseModel):
    """Outcome of an explicit bulk import."""

    imported: list[ProjectRead] = Field(default_factory=list)
    conflicts: list[SyncConflict] = Field(default_factory=list)


class ScanRequest(BaseModel):
    """Request body for scan and sync. Defaults to the configured scan root."""

    root_path: str | None = None


class ImportRequest(BaseModel):
    candidates: list[Candidate] = Field(min_length=1)


class CountResponse(BaseModel):
    """Number of rows affected by a bulk lifecycle operation."""

    count: int


class ProjectUpdate(BaseModel):
    """User-owned metadata edit. Fields left out are not changed."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    tags: list[str] | None = None
    color: str | None = Field(default=None, max_length=32)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str:
        if v is None or not v.strip():
            raise ValueError("Project name cannot be empty or whitespace only")
        return v.strip()

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str]:
        if v is None:
            raise ValueError("Tags cannot be null; send [] to clear them")
        return normalize_tags(v)
