"""Directory scanner: turns a root directory into reconciliation candidates."""

import asyncio
import os
from pathlib import Path

from src.commander.core.config import Settings
from src.commander.core.errors import ScanIOError
from src.commander.core.logging import get_logger
from src.commander.core.validators import validate_scan_root
from src.commander.schemas.project import Candidate, ScanReport, ScanWarning
from src.commander.services.identity import IdentityKeyDeriver

logger = get_logger(__name__)

PROJECT_MARKERS = (".git", "package.json", "Cargo.toml", "pyproject.toml")
SKIPPED_DIRECTORIES = frozenset({"node_modules", ".git", "target", ".cargo", ".venv"})


class DirectoryScanner:
    """Find project directories under a root and describe them as candidates.

    Discovery is a read-only walk. Identity derivation for the discovered
    directories runs concurrently in a bounded pool of worker threads.
    """

    def __init__(
        self,
        deriver: IdentityKeyDeriver,
        max_depth: int = 2,
        workers: int = 8,
        restrict_to_home: bool = True,
    ):
        self.deriver = deriver
        self.max_depth = max_depth
        self.workers = workers
        self.restrict_to_home = restrict_to_home

    @classmethod
    def from_settings(cls, settings: Settings) -> "DirectoryScanner":
        deriver = IdentityKeyDeriver(
            git_timeout=settings.git_timeout_seconds,
            write_stamps=settings.identity_stamp_write,
        )
        return cls(
            deriver,
            max_depth=settings.scan_max_depth,
            workers=settings.scan_workers,
            restrict_to_home=settings.restrict_to_home,
        )

    async def scan(self, root: str | Path) -> ScanReport:
        """Scan ``root`` without touching the registry.

        Raises:
            InvalidPathError: If the root is not an acceptable scan location.
            ScanIOError: If the root is missing or unreadable.
        """
        root_path = validate_scan_root(root, restrict_to_home=self.restrict_to_home)
        directories, warnings = await asyncio.to_thread(self._discover, root_path)

        semaphore = asyncio.Semaphore(self.workers)
        described = await asyncio.gather(
            *(self._describe(directory, semaphore) for directory in directories)
        )

        candidates: list[Candidate] = []
        for candidate, warning in described:
            if candidate is not None:
                candidates.append(candidate)
            if warning is not None:
                warnings.append(warning)

        candidates.sort(key=lambda c: c.path)
        warnings.sort(key=lambda w: w.path)
        logger.info(
            "Scan completed",
            root=str(root_path),
            candidates=len(candidates),
            warnings=len(warnings),
        )
        return ScanReport(root=str(root_path), candidates=candidates, warnings=warnings)

    def _discover(self, root: Path) -> tuple[list[Path], list[ScanWarning]]:
        if not root.exists():
            raise ScanIOError(str(root), "directory does not exist")
        if not root.is_dir():
            raise ScanIOError(str(root), "not a directory")

        try:
            top_level = self._subdirectories(root)
        except OSError as e:
            raise ScanIOError(str(root), e.strerror or str(e)) from e

        found: list[Path] = []
        warnings: list[ScanWarning] = []
        stack: list[tuple[Path, int]] = [(d, 1) for d in reversed(top_level)]

        while stack:
            directory, depth = stack.pop()
            try:
                if self._is_project(directory):
                    # Project roots are not descended into
                    found.append(directory)
                    continue
                if depth < self.max_depth:
                    children = self._subdirectories(directory)
                    stack.extend((child, depth + 1) for child in reversed(children))
            except OSError as e:
                logger.warning("Skipping unreadable directory", path=str(directory), error=str(e))
                warnings.append(ScanWarning(path=str(directory), reason=e.strerror or str(e)))

        return found, warnings

    @staticmethod
    def _subdirectories(directory: Path) -> list[Path]:
        with os.scandir(directory) as entries:
            children = [
                Path(entry.path)
                for entry in entries
                if entry.is_dir(follow_symlinks=False) and entry.name not in SKIPPED_DIRECTORIES
            ]
        return sorted(children)

    @staticmethod
    def _is_project(directory: Path) -> bool:
        return any((directory / marker).exists() for marker in PROJECT_MARKERS)

    async def _describe(
        self,
        directory: Path,
        semaphore: asyncio.Semaphore,
    ) -> tuple[Candidate | None, ScanWarning | None]:
        async with semaphore:
            try:
                identity_key = await asyncio.to_thread(self.deriver.derive, directory)
            except OSError as e:
                logger.warning("Skipping unreadable project", path=str(directory), error=str(e))
                return None, ScanWarning(path=str(directory), reason=e.strerror or str(e))

        candidate = Candidate(
            path=str(directory),
            name=directory.name,
            identity_key=identity_key,
        )
        return candidate, None
