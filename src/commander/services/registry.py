"""Project registry: transactional access to the persisted project store."""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Literal

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.commander.core.errors import (
    CommanderError,
    ShuttingDownError,
    StoreError,
    SyncInProgressError,
)
from src.commander.core.logging import get_logger
from src.commander.core.shutdown import WriteTracker
from src.commander.repositories import DependentRepository, ProjectRepository

logger = get_logger(__name__)


@dataclass
class RegistryUnit:
    """Repositories sharing one session (one transaction)."""

    session: AsyncSession
    projects: ProjectRepository = field(init=False)
    dependents: DependentRepository = field(init=False)

    def __post_init__(self) -> None:
        self.projects = ProjectRepository(self.session)
        self.dependents = DependentRepository(self.session)

    async def flush(self) -> None:
        await self.session.flush()


class ProjectRegistry:
    """Handle on the project store with a single-writer discipline.

    Every mutation goes through ``write()`` (or ``acquire()`` followed by
    ``transaction()``): one transaction, serialized against all other
    writers of this registry, committed as a whole or rolled back as a
    whole. Share one instance per database.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        lock_mode: Literal["wait", "fail"] = "wait",
        tracker: WriteTracker | None = None,
    ):
        self._session_factory = session_factory
        self._write_lock = asyncio.Lock()
        self.lock_mode = lock_mode
        self.tracker = tracker or WriteTracker()

    @property
    def is_writing(self) -> bool:
        """True while a write transaction holds the lock."""
        return self._write_lock.locked()

    @asynccontextmanager
    async def read(self) -> AsyncGenerator[RegistryUnit]:
        """Open a read-only unit. Nothing is committed."""
        async with self._session_factory() as session:
            yield RegistryUnit(session)

    async def acquire(self, operation: str = "write") -> None:
        """Take the write lock for a following ``transaction()``.

        Waiting here is cancellable and leaves nothing behind. The caller
        must hand the lock to ``transaction()``, which releases it.

        Raises:
            SyncInProgressError: In ``fail`` lock mode when another write is running.
            ShuttingDownError: Once shutdown has begun.
        """
        self.tracker.ensure_accepting(operation)
        if self.lock_mode == "fail" and self._write_lock.locked():
            raise SyncInProgressError()
        await self._write_lock.acquire()
        try:
            self.tracker.ensure_accepting(operation)
        except ShuttingDownError:
            self._write_lock.release()
            raise

    @asynccontextmanager
    async def transaction(self, operation: str = "write") -> AsyncGenerator[RegistryUnit]:
        """Run one write transaction under a lock taken by ``acquire()``.

        The lock is released on exit whatever the outcome.

        Raises:
            StoreError: If flushing or committing fails; the transaction is rolled back.
        """
        try:
            with self.tracker.track(operation):
                async with self._session_factory() as session:
                    unit = RegistryUnit(session)
                    try:
                        yield unit
                        await session.commit()
                    except CommanderError:
                        await session.rollback()
                        raise
                    except IntegrityError as e:
                        await session.rollback()
                        logger.error(
                            "Registry constraint violated", operation=operation, error=str(e)
                        )
                        raise StoreError(f"{operation} violated a registry constraint") from e
                    except SQLAlchemyError as e:
                        await session.rollback()
                        logger.error("Registry write failed", operation=operation, error=str(e))
                        raise StoreError(f"{operation} failed: {e}") from e
                    except BaseException:
                        await session.rollback()
                        raise
        finally:
            self._write_lock.release()

    @asynccontextmanager
    async def write(self, operation: str = "write") -> AsyncGenerator[RegistryUnit]:
        """Open a serialized write transaction: ``acquire()`` then ``transaction()``."""
        await self.acquire(operation)
        async with self.transaction(operation) as unit:
            yield unit
