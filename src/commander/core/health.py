"""Health check endpoint reporting database, writer and notifier state."""

import time
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from src.commander.services.notifier import StaleProjectNotifier
from src.commander.services.registry import ProjectRegistry
from src.commander.services.watcher import ScanRootWatcher


def setup_health_endpoint(app: FastAPI) -> None:
    """Configure the health check endpoint."""

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """Health check with database validation."""
        registry: ProjectRegistry = request.app.state.registry
        notifier: StaleProjectNotifier | None = getattr(request.app.state, "notifier", None)

        # If shutting down, always return draining status
        if registry.tracker.is_shutting_down:
            return JSONResponse(
                content={
                    "status": "draining",
                    "in_flight_writes": registry.tracker.in_flight_count,
                    "message": "Server is shutting down",
                },
                status_code=503,
            )

        health_status: dict[str, Any] = {
            "status": "healthy",
            "database": "unknown",
            "sync_running": registry.is_writing,
            "notifier": "not_configured",
            "timestamp": time.time(),
        }

        try:
            async with registry.read() as unit:
                await unit.session.execute(text("SELECT 1"))
            health_status["database"] = "healthy"
        except Exception as e:
            health_status["database"] = f"unhealthy: {str(e)}"
            health_status["status"] = "unhealthy"

        if notifier is not None:
            health_status["notifier"] = "running" if notifier.is_running else "stopped"
            health_status["stale_signals"] = notifier.signals_emitted
            # A stopped notifier only means no auto-sync
            if not notifier.is_running and health_status["status"] == "healthy":
                health_status["status"] = "degraded"

        watcher: ScanRootWatcher | None = getattr(request.app.state, "watcher", None)
        if watcher is not None:
            health_status["watcher"] = "running" if watcher.is_running else "stopped"

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)
