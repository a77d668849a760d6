"""Domain errors raised by the project registry services.

Every error carries a stable ``code`` so API clients can branch on it without
parsing messages. HTTP translation lives in ``core/exceptions.py``.
"""

from typing import Any
from uuid import UUID


class CommanderError(Exception):
    """Base class for all registry errors."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "detail": self.message, **self.details}


class ScanIOError(CommanderError):
    """Scan root unreadable or missing. Retryable; nothing was mutated."""

    code = "IO_ERROR"

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot scan {path}: {reason}", path=path)
        self.path = path
        self.reason = reason


class InvalidPathError(CommanderError):
    """Path rejected before any filesystem access."""

    code = "INVALID_PATH"

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid path {path}: {reason}", path=path)
        self.path = path


class NotFoundError(CommanderError):
    code = "NOT_FOUND"

    def __init__(self, project_id: UUID):
        super().__init__(f"Project {project_id} not found", project_id=str(project_id))
        self.project_id = project_id


class InvalidStateError(CommanderError):
    """A lifecycle transition that is not allowed from the current state."""

    code = "INVALID_STATE"

    def __init__(self, project_id: UUID, current: str, reason: str):
        super().__init__(
            f"Project {project_id} is {current}: {reason}",
            project_id=str(project_id),
            state=current,
        )
        self.project_id = project_id
        self.current = current


class ConflictError(CommanderError):
    """A write would collide with another active row's path or identity key."""

    code = "CONFLICT"

    def __init__(
        self,
        field: str,
        value: str,
        existing_id: UUID,
        project_id: UUID | None = None,
    ):
        super().__init__(
            f"Active project {existing_id} already has {field} {value!r}",
            field=field,
            value=value,
            existing_id=str(existing_id),
            project_id=str(project_id) if project_id else None,
        )
        self.field = field
        self.value = value
        self.existing_id = existing_id
        self.project_id = project_id


class StoreError(CommanderError):
    """Commit failed; the whole operation was rolled back."""

    code = "STORE_ERROR"


class SyncInProgressError(CommanderError):
    code = "SYNC_IN_PROGRESS"

    def __init__(self) -> None:
        super().__init__("Another sync is already applying changes")


class ShuttingDownError(CommanderError):
    """Write refused because the registry is shutting down."""

    code = "SHUTTING_DOWN"

    def __init__(self, operation: str):
        super().__init__(f"Registry is shutting down; {operation} refused", operation=operation)
        self.operation = operation
