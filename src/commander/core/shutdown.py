"""Graceful shutdown of the project registry.

Once shutdown begins the registry refuses new writes. Writes that already
hold the lock run to completion and are drained before the engine closes.
"""

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager

from src.commander.core.errors import ShuttingDownError
from src.commander.core.logging import get_logger

logger = get_logger(__name__)


class WriteTracker:
    """Counts in-flight registry writes and gates new ones during shutdown."""

    def __init__(self) -> None:
        self._in_flight = 0
        self._shutting_down = False
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def in_flight_count(self) -> int:
        return self._in_flight

    def ensure_accepting(self, operation: str) -> None:
        """Raise ShuttingDownError once shutdown has begun."""
        if self._shutting_down:
            logger.warning("Write refused during shutdown", operation=operation)
            raise ShuttingDownError(operation)

    @contextmanager
    def track(self, operation: str) -> Iterator[None]:
        """Count one write transaction for the duration of the block."""
        self._in_flight += 1
        self._idle.clear()
        logger.debug("Write started", operation=operation, in_flight=self._in_flight)
        try:
            yield
        finally:
            self._in_flight -= 1
            logger.debug("Write finished", operation=operation, in_flight=self._in_flight)
            if self._in_flight == 0:
                self._idle.set()

    def begin_shutdown(self) -> None:
        """Stop accepting writes. Running ones are left to finish."""
        self._shutting_down = True
        logger.info("Registry entering shutdown", in_flight=self._in_flight)

    async def wait_for_drain(self, timeout: float) -> bool:
        """Wait until no write is in flight.

        Returns:
            True if the registry drained within ``timeout`` seconds.
        """
        try:
            await asyncio.wait_for(self._idle.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning("Write drain timed out", timeout=timeout, in_flight=self._in_flight)
            return False
        logger.info("All writes drained")
        return True
