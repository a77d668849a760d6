from src.commander.services.identity import IdentityKeyDeriver
from src.commander.services.lifecycle import LifecycleManager
from src.commander.services.notifier import StaleProjectNotifier
from src.commander.services.reconciler import ProjectReconciler
from src.commander.services.registry import ProjectRegistry
from src.commander.services.scanner import DirectoryScanner
from src.commander.services.watcher import ScanRootWatcher

__all__ = [
    "DirectoryScanner",
    "IdentityKeyDeriver",
    "LifecycleManager",
    "ProjectReconciler",
    "ProjectRegistry",
    "ScanRootWatcher",
    "StaleProjectNotifier",
]
