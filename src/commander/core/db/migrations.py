"""Schema setup for production (Alembic) and tests (metadata)."""

import asyncio

from alembic.config import Config
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import SQLModel

from alembic import command
from src.commander.core.db.engine import get_engine


def run_migrations_sync(config_path: str = "alembic.ini") -> None:
    """Run Alembic migrations synchronously up to head."""
    alembic_cfg = Config(config_path)
    command.upgrade(alembic_cfg, "head")


async def run_migrations_async(config_path: str = "alembic.ini") -> None:
    """Run Alembic migrations from async context without blocking the loop."""
    await asyncio.to_thread(run_migrations_sync, config_path)


async def init_models(engine: AsyncEngine | None = None) -> None:
    """Create all tables from model metadata (tests and first run without Alembic)."""
    # Register every table on the metadata
    import src.commander.models  # noqa: F401

    if engine is None:
        engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
