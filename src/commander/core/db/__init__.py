"""Database utilities - engine, session, migrations."""

from src.commander.core.db.engine import create_registry_engine, dispose_engine, get_engine
from src.commander.core.db.migrations import init_models, run_migrations_async, run_migrations_sync
from src.commander.core.db.session import create_session_factory

__all__ = [
    # Engine
    "create_registry_engine",
    "dispose_engine",
    "get_engine",
    # Session
    "create_session_factory",
    # Schema
    "init_models",
    "run_migrations_async",
    "run_migrations_sync",
]
