"""Project lifecycle: metadata edits, archive, restore and purge."""

import asyncio
from pathlib import Path
from uuid import UUID

from src.commander.core.errors import ConflictError, InvalidStateError, NotFoundError
from src.commander.core.logging import get_logger
from src.commander.models import Project, ProjectState
from src.commander.models.base import utc_now
from src.commander.schemas.project import ProjectUpdate
from src.commander.services.registry import ProjectRegistry, RegistryUnit

logger = get_logger(__name__)

# PURGED is terminal; every other move raises InvalidStateError
ALLOWED_TRANSITIONS: dict[ProjectState, frozenset[ProjectState]] = {
    ProjectState.ACTIVE: frozenset({ProjectState.ARCHIVED}),
    ProjectState.ARCHIVED: frozenset({ProjectState.ACTIVE, ProjectState.PURGED}),
    ProjectState.PURGED: frozenset(),
}


def ensure_transition(project: Project, target: ProjectState) -> None:
    """Raise InvalidStateError unless ``project`` may move to ``target``."""
    current = project.state
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStateError(
            project.id,
            current.value,
            f"cannot move from {current.value} to {target.value}",
        )


class LifecycleManager:
    """Explicit user-driven lifecycle operations on registry rows."""

    def __init__(self, registry: ProjectRegistry):
        self.registry = registry

    async def get(self, project_id: UUID) -> Project:
        async with self.registry.read() as unit:
            return await _get_or_raise(unit, project_id)

    async def list_active(self) -> list[Project]:
        async with self.registry.read() as unit:
            return await unit.projects.list_active()

    async def list_archived(self) -> list[Project]:
        async with self.registry.read() as unit:
            return await unit.projects.list_archived()

    async def update(self, project_id: UUID, changes: ProjectUpdate) -> Project:
        """Edit user-owned metadata (name, tags, color) of an active or archived project.

        Raises:
            NotFoundError: Unknown id.
        """
        fields = changes.model_dump(exclude_unset=True)
        async with self.registry.write("update") as unit:
            project = await _get_or_raise(unit, project_id)
            for name, value in fields.items():
                setattr(project, name, value)

        logger.info("Project updated", project_id=str(project_id), fields=sorted(fields))
        return project

    async def archive(self, project_id: UUID) -> Project:
        """Archive an active project by hand.

        Raises:
            NotFoundError: Unknown id.
            InvalidStateError: Project is already archived.
        """
        async with self.registry.write("archive") as unit:
            project = await _get_or_raise(unit, project_id)
            ensure_transition(project, ProjectState.ARCHIVED)
            unit.projects.archive(project, utc_now())

        logger.info("Project archived", project_id=str(project_id))
        return project

    async def restore(self, project_id: UUID) -> Project:
        """Reactivate an archived project.

        Raises:
            NotFoundError: Unknown id.
            InvalidStateError: Project is active, or its stored path is gone.
            ConflictError: An active project now holds the same path or identity key.
        """
        async with self.registry.read() as unit:
            project = await _get_or_raise(unit, project_id)
            ensure_transition(project, ProjectState.ACTIVE)
            path = project.path

        # Filesystem check happens outside the write lock
        if not await asyncio.to_thread(Path(path).is_dir):
            raise InvalidStateError(
                project_id, ProjectState.ARCHIVED.value, f"path {path} no longer exists"
            )

        async with self.registry.write("restore") as unit:
            project = await _get_or_raise(unit, project_id)
            ensure_transition(project, ProjectState.ACTIVE)

            holder = await unit.projects.get_active_by_path(project.path)
            if holder is not None:
                raise ConflictError("path", project.path, holder.id, project_id=project.id)
            if project.identity_key:
                holder = await unit.projects.get_active_by_identity_key(project.identity_key)
                if holder is not None:
                    raise ConflictError(
                        "identity_key", project.identity_key, holder.id, project_id=project.id
                    )

            unit.projects.unarchive(project)

        logger.info("Project restored", project_id=str(project_id), path=project.path)
        return project

    async def purge(self, project_id: UUID) -> None:
        """Hard-delete an archived project, detaching its dependents.

        Raises:
            NotFoundError: Unknown id.
            InvalidStateError: Project is active; nothing is changed.
        """
        async with self.registry.write("purge") as unit:
            project = await _get_or_raise(unit, project_id)
            ensure_transition(project, ProjectState.PURGED)
            detached = await unit.dependents.detach_projects([project.id])
            await unit.projects.delete(project)

        logger.info("Project purged", project_id=str(project_id), detached=detached)

    async def purge_all_archived(self) -> int:
        """Purge every archived project. Returns the number purged."""
        async with self.registry.write("purge_all_archived") as unit:
            ids = await unit.projects.archived_ids()
            detached = await unit.dependents.detach_projects(ids)
            purged = await unit.projects.delete_by_ids(ids)

        logger.info("Archived projects purged", count=purged, detached=detached)
        return purged

    async def reset_all(self) -> int:
        """Delete every dependent row and every project. Irreversible.

        Returns the number of projects deleted.
        """
        async with self.registry.write("reset_all") as unit:
            dependents = await unit.dependents.delete_all()
            removed = await unit.projects.delete_all()

        logger.warning("Registry reset", projects=removed, dependents=dependents)
        return removed


async def _get_or_raise(unit: RegistryUnit, project_id: UUID) -> Project:
    project = await unit.projects.get_by_id(project_id)
    if project is None:
        raise NotFoundError(project_id)
    return project
