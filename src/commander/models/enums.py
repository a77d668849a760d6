"""Shared enums for models."""

from enum import Enum


class ProjectState(str, Enum):
    """Project lifecycle state.

    PURGED is terminal and never stored: a purged project has no row.
    """

    ACTIVE = "active"
    ARCHIVED = "archived"
    PURGED = "purged"


class PlanningStatus(str, Enum):
    """Kanban column of a planning item."""

    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"
