from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="COMMANDER_",
        extra="ignore",
    )

    # App
    app_name: str = "Project Commander"
    app_env: str = "development"  # development, testing, production
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./commander.db"
    database_echo: bool = False

    # Scanning
    scan_root: str = "~/cv"
    scan_max_depth: int = 2
    scan_workers: int = 8  # Bounded pool for identity derivation
    restrict_to_home: bool = True  # Reject scan roots outside the user's home
    identity_stamp_write: bool = False  # Write .commander-id stamps for key-less dirs
    git_timeout_seconds: float = 5.0

    # Sync
    sync_lock_mode: Literal["wait", "fail"] = "wait"

    # Change notifier
    stale_debounce_seconds: float = 2.0
    stale_queue_size: int = 256
    auto_sync_on_stale: bool = True

    # Scan root watcher
    watch_scan_root: bool = True
    watch_debounce_ms: int = 500
    watch_force_polling: bool = False  # For filesystems without native events

    # Shutdown
    shutdown_grace_period: int = 10

    # Startup schema setup: Alembic upgrade instead of metadata create_all
    migrate_on_startup: bool = False

    # CORS (local UI)
    cors_origins: list[str] = ["http://localhost:1420", "tauri://localhost"]

    @field_validator("scan_max_depth")
    @classmethod
    def validate_scan_max_depth(cls, v: int) -> int:
        if v < 1:
            raise ValueError("SCAN_MAX_DEPTH must be at least 1")
        return v

    @field_validator("scan_workers")
    @classmethod
    def validate_scan_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("SCAN_WORKERS must be at least 1")
        return v

    @field_validator("stale_debounce_seconds")
    @classmethod
    def validate_debounce(cls, v: float) -> float:
        if v < 0:
            raise ValueError("STALE_DEBOUNCE_SECONDS cannot be negative")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
