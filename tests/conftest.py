"""Root test fixtures shared across all test types.

Every registry fixture runs against a fresh in-memory SQLite database, so
tests need no external services.
"""

import os

# Configure the test environment before any app imports
os.environ.setdefault("COMMANDER_APP_ENV", "testing")
os.environ.setdefault("COMMANDER_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("COMMANDER_RESTRICT_TO_HOME", "false")
os.environ.setdefault("COMMANDER_AUTO_SYNC_ON_STALE", "false")

# ruff: noqa: E402 - Imports must be after env var setup
from collections.abc import AsyncGenerator

import pytest
import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from structlog.testing import CapturingLogger

from src.commander.core.config import get_settings
from src.commander.core.db import create_registry_engine, create_session_factory, init_models
from src.commander.core.logging import clear_request_context
from src.commander.services.identity import IdentityKeyDeriver
from src.commander.services.lifecycle import LifecycleManager
from src.commander.services.reconciler import ProjectReconciler
from src.commander.services.registry import ProjectRegistry
from src.commander.services.scanner import DirectoryScanner
from tests.helpers import read_fake_git_remote

# Clear settings cache to ensure test environment variables are picked up
get_settings.cache_clear()


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory registry database with all tables created."""
    test_engine = create_registry_engine("sqlite+aiosqlite:///:memory:")
    await init_models(test_engine)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(engine)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """Session for direct assertions. Tests must commit what they add."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def registry(session_factory: async_sessionmaker[AsyncSession]) -> ProjectRegistry:
    return ProjectRegistry(session_factory)


@pytest.fixture
def deriver() -> IdentityKeyDeriver:
    """Deriver that reads remotes from ``.git/origin`` files instead of running git."""
    return IdentityKeyDeriver(git_remote_reader=read_fake_git_remote)


@pytest.fixture
def scanner(deriver: IdentityKeyDeriver) -> DirectoryScanner:
    return DirectoryScanner(deriver, max_depth=2, workers=4, restrict_to_home=False)


@pytest.fixture
def reconciler(registry: ProjectRegistry, scanner: DirectoryScanner) -> ProjectReconciler:
    return ProjectReconciler(registry, scanner)


@pytest.fixture
def lifecycle(registry: ProjectRegistry) -> LifecycleManager:
    return LifecycleManager(registry)


@pytest.fixture
def capturing_logger():
    """Route structlog output to a CapturingLogger, keeping contextvars."""
    cap_logger = CapturingLogger()
    old_config = structlog.get_config()

    structlog.configure(
        processors=[structlog.contextvars.merge_contextvars],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=lambda *args, **kwargs: cap_logger,
        cache_logger_on_first_use=False,
    )

    clear_request_context()
    yield cap_logger
    clear_request_context()
    structlog.configure(**old_config)
