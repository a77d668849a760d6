from src.commander.schemas.project import (
    Candidate,
    CountResponse,
    ImportRequest,
    ImportResult,
    ProjectRead,
    ScanReport,
    ScanRequest,
    ScanWarning,
    SyncConflict,
    SyncResult,
)

__all__ = [
    # Scanning
    "Candidate",
    "ScanReport",
    "ScanRequest",
    "ScanWarning",
    # Reconciliation
    "ImportRequest",
    "ImportResult",
    "SyncConflict",
    "SyncResult",
    # Projects
    "CountResponse",
    "ProjectRead",
]
