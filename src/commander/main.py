from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.commander.api.middlewares import setup_middlewares
from src.commander.api.v1.router import api_router
from src.commander.core.config import Settings, get_settings
from src.commander.core.db import (
    create_session_factory,
    dispose_engine,
    get_engine,
    init_models,
    run_migrations_async,
)
from src.commander.core.exceptions import setup_exception_handlers
from src.commander.core.health import setup_health_endpoint
from src.commander.core.logging import get_logger, setup_logging
from src.commander.core.shutdown import WriteTracker
from src.commander.services.notifier import StaleListener, StaleProjectNotifier
from src.commander.services.reconciler import ProjectReconciler
from src.commander.services.registry import ProjectRegistry
from src.commander.services.scanner import DirectoryScanner
from src.commander.services.watcher import ScanRootWatcher

logger = get_logger(__name__)


def build_auto_sync_listener(reconciler: ProjectReconciler, settings: Settings) -> StaleListener:
    """Listener that re-syncs the configured scan root on each stale signal."""

    async def auto_sync() -> None:
        result = await reconciler.sync_root(settings.scan_root)
        logger.info(
            "Auto-sync finished",
            added=len(result.added),
            updated=len(result.updated),
            archived=result.archived_count,
        )

    return auto_sync


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan - startup and shutdown."""
    settings = get_settings()
    setup_logging(settings.debug)
    logger.info(f"Starting {settings.app_name}")

    engine = get_engine()
    if settings.migrate_on_startup:
        await run_migrations_async()
    else:
        await init_models(engine)

    registry = ProjectRegistry(
        create_session_factory(engine),
        lock_mode=settings.sync_lock_mode,
        tracker=WriteTracker(),
    )
    scanner = DirectoryScanner.from_settings(settings)
    notifier = StaleProjectNotifier.from_settings(settings)
    if settings.auto_sync_on_stale:
        notifier.add_listener(
            build_auto_sync_listener(ProjectReconciler(registry, scanner), settings)
        )
    notifier.start()

    watcher: ScanRootWatcher | None = None
    if settings.watch_scan_root:
        watcher = ScanRootWatcher.from_settings(settings, notifier)
        await watcher.start()

    app.state.registry = registry
    app.state.scanner = scanner
    app.state.notifier = notifier
    app.state.watcher = watcher

    yield

    if watcher is not None:
        await watcher.stop()
    await notifier.stop()

    # Refuse new writes and let a running sync commit before the engine goes away
    grace_period = settings.shutdown_grace_period
    logger.info(
        f"Shutdown initiated, waiting for {registry.tracker.in_flight_count} in-flight writes..."
    )
    registry.tracker.begin_shutdown()
    drained = await registry.tracker.wait_for_drain(timeout=grace_period)
    if not drained:
        logger.warning(
            f"Shutdown timeout after {grace_period}s - "
            f"{registry.tracker.in_flight_count} writes may not have completed"
        )

    logger.info("Closing connections...")
    await dispose_engine()
    logger.info("Shutdown complete")


OPENAPI_TAGS = [
    {"name": "projects", "description": "Project registry: scan, sync, archive and purge"},
]


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Local project registry kept in sync with directories on disk",
        version="0.1.0",
        openapi_tags=OPENAPI_TAGS,
        lifespan=lifespan,
    )

    setup_exception_handlers(app)
    setup_middlewares(app, settings)
    app.include_router(api_router)
    setup_health_endpoint(app)

    return app


app = create_app()
