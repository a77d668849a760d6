"""Scan-root watcher feeding filesystem changes into the stale notifier."""

import asyncio
from collections.abc import Iterable
from pathlib import Path

from watchfiles import Change, awatch

from src.commander.core.config import Settings
from src.commander.core.logging import get_logger
from src.commander.core.validators import normalize_project_path
from src.commander.services.notifier import ChangeKind, FileEvent, StaleProjectNotifier

logger = get_logger(__name__)

CHANGE_KINDS: dict[Change, ChangeKind] = {
    Change.added: ChangeKind.CREATED,
    Change.modified: ChangeKind.MODIFIED,
    Change.deleted: ChangeKind.REMOVED,
}


class ScanRootWatcher:
    """Watch the immediate children of the scan root.

    Project directories live directly under the root, so a non-recursive
    watch is enough to see one disappear. Every change is handed to the
    notifier, which keeps only removals.
    """

    def __init__(
        self,
        root: str | Path,
        notifier: StaleProjectNotifier,
        debounce_ms: int = 500,
        force_polling: bool = False,
        poll_delay_ms: int = 300,
    ):
        self.root = normalize_project_path(root)
        self.notifier = notifier
        self.debounce_ms = debounce_ms
        self.force_polling = force_polling
        self.poll_delay_ms = poll_delay_ms
        self._stop_event: asyncio.Event | None = None
        self._task: asyncio.Task | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, notifier: StaleProjectNotifier
    ) -> "ScanRootWatcher":
        return cls(
            settings.scan_root,
            notifier,
            debounce_ms=settings.watch_debounce_ms,
            force_polling=settings.watch_force_polling,
        )

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def dispatch(self, changes: Iterable[tuple[Change, str]]) -> int:
        """Publish a batch of raw changes. Returns how many the notifier queued."""
        queued = 0
        for change, path in changes:
            if self.notifier.publish(FileEvent(CHANGE_KINDS[change], path)):
                queued += 1
        return queued

    async def start(self) -> bool:
        """Start watching. Returns False if the root is not a directory."""
        if self.is_running:
            return True
        if not await asyncio.to_thread(Path(self.root).is_dir):
            logger.warning("Scan root missing, watcher not started", root=self.root)
            return False
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch(), name="scan-root-watcher")
        logger.info("Scan root watcher started", root=self.root)
        return True

    async def stop(self) -> None:
        if self._task is None:
            return
        if self._stop_event is not None:
            self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except TimeoutError:
            logger.warning("Scan root watcher did not stop in time", root=self.root)
        self._task = None
        logger.info("Scan root watcher stopped", root=self.root)

    async def _watch(self) -> None:
        try:
            async for changes in awatch(
                self.root,
                stop_event=self._stop_event,
                recursive=False,
                debounce=self.debounce_ms,
                force_polling=self.force_polling,
                poll_delay_ms=self.poll_delay_ms,
                ignore_permission_denied=True,
            ):
                queued = self.dispatch(changes)
                if queued:
                    logger.debug("Removals queued", root=self.root, count=queued)
        except Exception as e:
            logger.error("Scan root watcher failed", root=self.root, error=str(e), exc_info=True)
