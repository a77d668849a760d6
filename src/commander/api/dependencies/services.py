"""Service factory dependencies.

The registry, scanner and notifier are built once in the application
lifespan and stored on ``app.state``; services are cheap wrappers created
per request around them.
"""

from typing import Annotated

from fastapi import Depends, Request

from src.commander.core.config import Settings, get_settings
from src.commander.services.lifecycle import LifecycleManager
from src.commander.services.reconciler import ProjectReconciler
from src.commander.services.registry import ProjectRegistry
from src.commander.services.scanner import DirectoryScanner


def get_registry(request: Request) -> ProjectRegistry:
    """Get the application-wide project registry."""
    return request.app.state.registry


def get_scanner(request: Request) -> DirectoryScanner:
    return request.app.state.scanner


Registry = Annotated[ProjectRegistry, Depends(get_registry)]
Scanner = Annotated[DirectoryScanner, Depends(get_scanner)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def get_reconciler(registry: Registry, scanner: Scanner) -> ProjectReconciler:
    """Get reconciler bound to the shared registry."""
    return ProjectReconciler(registry, scanner)


def get_lifecycle_manager(registry: Registry) -> LifecycleManager:
    """Get lifecycle manager bound to the shared registry."""
    return LifecycleManager(registry)


Reconciler = Annotated[ProjectReconciler, Depends(get_reconciler)]
Lifecycle = Annotated[LifecycleManager, Depends(get_lifecycle_manager)]
