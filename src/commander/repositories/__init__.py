"""Repository layer - data access abstraction."""

from src.commander.repositories.base import BaseRepository
from src.commander.repositories.planning import DEPENDENT_MODELS, DependentRepository
from src.commander.repositories.project import ProjectRepository

__all__ = [
    # Base
    "BaseRepository",
    # Projects
    "ProjectRepository",
    # Dependents
    "DEPENDENT_MODELS",
    "DependentRepository",
]
