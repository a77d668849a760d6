"""Model exports.

Import from here: `from src.commander.models import Project, PlanningItem`
"""

# Enums
from src.commander.models.enums import PlanningStatus, ProjectState

# Registry models
from src.commander.models.planning import IssueLink, PlanningItem
from src.commander.models.project import Project

__all__ = [
    # Enums
    "PlanningStatus",
    "ProjectState",
    # Models
    "IssueLink",
    "PlanningItem",
    "Project",
]
