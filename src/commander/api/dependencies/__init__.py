"""FastAPI dependency injection definitions.

Re-exports all dependencies for convenience.
"""

from src.commander.api.dependencies.services import (
    Lifecycle,
    Reconciler,
    Registry,
    SettingsDep,
    get_lifecycle_manager,
    get_reconciler,
    get_registry,
)

__all__ = [
    # Registry
    "Registry",
    "get_registry",
    # Services
    "Lifecycle",
    "Reconciler",
    "get_lifecycle_manager",
    "get_reconciler",
    # Settings
    "SettingsDep",
]
