"""Stale-project notifier.

Filesystem watchers publish events here; a single consumer task turns bursts
of removals into one "projects stale" signal per quiet period. The notifier
never touches the registry; listeners decide what to do with the signal.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from src.commander.core.config import Settings
from src.commander.core.logging import get_logger

logger = get_logger(__name__)

StaleListener = Callable[[], Awaitable[None]]


class ChangeKind(str, Enum):
    """Kind of filesystem change reported by a watcher."""

    CREATED = "created"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass(frozen=True)
class FileEvent:
    kind: ChangeKind
    path: str


class StaleProjectNotifier:
    """Debounce removal events into stale signals.

    Events go onto a bounded queue. When the queue is full the event is
    dropped: a signal is already pending for the events in front of it.
    """

    def __init__(self, debounce_seconds: float = 2.0, queue_size: int = 256):
        self.debounce_seconds = debounce_seconds
        self._queue: asyncio.Queue[FileEvent] = asyncio.Queue(maxsize=queue_size)
        self._listeners: list[StaleListener] = []
        self._task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self.signals_emitted = 0
        self.events_dropped = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "StaleProjectNotifier":
        return cls(
            debounce_seconds=settings.stale_debounce_seconds,
            queue_size=settings.stale_queue_size,
        )

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def pending_events(self) -> int:
        return self._queue.qsize()

    def add_listener(self, listener: StaleListener) -> None:
        """Register an async callback invoked once per stale signal."""
        self._listeners.append(listener)

    def publish(self, event: FileEvent) -> bool:
        """Queue a filesystem event. Returns False if it was ignored or dropped."""
        if event.kind is not ChangeKind.REMOVED:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.events_dropped += 1
            logger.debug("Stale event dropped, queue full", path=event.path)
            return False
        return True

    def publish_removal(self, path: str) -> bool:
        return self.publish(FileEvent(ChangeKind.REMOVED, path))

    def publish_threadsafe(self, event: FileEvent) -> None:
        """Publish from a watcher thread."""
        if self._loop is None:
            raise RuntimeError("Notifier is not started")
        self._loop.call_soon_threadsafe(self.publish, event)

    def start(self) -> None:
        """Start the consumer task on the running event loop."""
        if self.is_running:
            return
        self._loop = asyncio.get_running_loop()
        self._task = asyncio.create_task(self._consume(), name="stale-project-notifier")
        logger.info("Stale notifier started", debounce_seconds=self.debounce_seconds)

    async def stop(self) -> None:
        """Cancel the consumer task. Pending events are discarded."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Stale notifier stopped", signals_emitted=self.signals_emitted)

    async def _consume(self) -> None:
        while True:
            first = await self._queue.get()
            coalesced = 1
            # Keep draining until the stream has been quiet for a full period
            while True:
                try:
                    await asyncio.wait_for(self._queue.get(), timeout=self.debounce_seconds)
                    coalesced += 1
                except TimeoutError:
                    break
            await self._emit(first, coalesced)

    async def _emit(self, first: FileEvent, coalesced: int) -> None:
        self.signals_emitted += 1
        logger.info("Projects stale", first_path=first.path, events=coalesced)
        for listener in list(self._listeners):
            try:
                await listener()
            except Exception as e:
                logger.error(
                    "Stale listener failed",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e),
                    exc_info=True,
                )
