"""Reconciler: diff scan candidates against active projects and apply the diff.

Matching rules:

- Only active rows take part. A candidate whose identity key belongs to an
  archived row becomes a new project; archived rows are never resurrected
  implicitly.
- All identity-key matches are made first, then exact-path matches for the
  remaining candidates. Each row is matched at most once.
- Matched with the same path: unchanged. Matched with a different path: the
  row's path is updated in place and its id kept. Unmatched candidate: new
  row. Unmatched active row: archived.

The diff is computed from rows loaded inside the write transaction, so two
syncs never apply diffs computed against the same stale state.
"""

import asyncio
from collections.abc import Awaitable, Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypeVar
from uuid import UUID, uuid4

from src.commander.core.errors import ConflictError
from src.commander.core.logging import bind_sync_context, clear_sync_context, get_logger
from src.commander.core.validators import validate_project_path
from src.commander.models import Project
from src.commander.models.base import utc_now
from src.commander.schemas.project import (
    Candidate,
    ImportResult,
    ProjectRead,
    ScanReport,
    ScanWarning,
    SyncConflict,
    SyncResult,
)
from src.commander.services.registry import ProjectRegistry, RegistryUnit
from src.commander.services.scanner import DirectoryScanner

logger = get_logger(__name__)

# Path held by rows between the two phases of a move
_MOVE_PLACEHOLDER = "\x00moving:"


@dataclass
class SyncPlan:
    """Mutations a sync will apply. Built without side effects."""

    to_add: list[Candidate] = field(default_factory=list)
    to_move: list[tuple[Project, str]] = field(default_factory=list)
    to_backfill: list[tuple[Project, str]] = field(default_factory=list)
    to_archive: list[Project] = field(default_factory=list)
    unchanged: list[Project] = field(default_factory=list)
    # Candidates added without their identity key (key already held)
    keyless_adds: set[str] = field(default_factory=set)
    conflicts: list[SyncConflict] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)


def dedupe_candidates(
    candidates: Iterable[Candidate],
) -> tuple[list[Candidate], list[ScanWarning]]:
    """Drop repeated paths (first occurrence wins) and sort by path."""
    seen: dict[str, Candidate] = {}
    warnings: list[ScanWarning] = []
    for candidate in candidates:
        if candidate.path in seen:
            warnings.append(ScanWarning(path=candidate.path, reason="duplicate candidate path"))
            continue
        seen[candidate.path] = candidate
    return sorted(seen.values(), key=lambda c: c.path), warnings


def plan_sync(candidates: Iterable[Candidate], active: Sequence[Project]) -> SyncPlan:
    """Compute the diff between candidates and the active rows."""
    ordered, warnings = dedupe_candidates(candidates)
    plan = SyncPlan(warnings=warnings)

    by_key = {row.identity_key: row for row in active if row.identity_key}
    by_path = {row.path: row for row in active}
    claimed: dict[UUID, Candidate] = {}

    key_matches: list[tuple[Candidate, Project]] = []
    pending: list[Candidate] = []
    for candidate in ordered:
        row = by_key.get(candidate.identity_key) if candidate.identity_key else None
        if row is not None and row.id not in claimed:
            claimed[row.id] = candidate
            key_matches.append((candidate, row))
        else:
            pending.append(candidate)

    path_matches: list[tuple[Candidate, Project]] = []
    new_candidates: list[Candidate] = []
    for candidate in pending:
        row = by_path.get(candidate.path)
        if row is not None and row.id not in claimed:
            claimed[row.id] = candidate
            path_matches.append((candidate, row))
        else:
            new_candidates.append(candidate)

    # Key owners after the sync; key-matched rows keep theirs
    key_owners: dict[str, UUID] = {}
    for candidate, row in key_matches:
        key_owners[row.identity_key] = row.id  # type: ignore[index]
        if row.path == candidate.path:
            plan.unchanged.append(row)
        else:
            plan.to_move.append((row, candidate.path))

    # Path-matched rows that already have a key keep it; it is never replaced
    for _, row in path_matches:
        plan.unchanged.append(row)
        if row.identity_key:
            key_owners[row.identity_key] = row.id

    for candidate, row in path_matches:
        wanted = candidate.identity_key
        if row.identity_key or wanted is None:
            continue
        owner = key_owners.get(wanted)
        if owner is not None:
            # Two directories report the same identity; keep the row as it is
            plan.conflicts.append(
                SyncConflict(
                    path=candidate.path,
                    field="identity_key",
                    value=wanted,
                    project_id=row.id,
                    existing_id=owner,
                )
            )
            continue
        key_owners[wanted] = row.id
        plan.to_backfill.append((row, wanted))

    for candidate in new_candidates:
        key = candidate.identity_key
        if key is not None and key in key_owners:
            plan.keyless_adds.add(candidate.path)
            plan.conflicts.append(
                SyncConflict(
                    path=candidate.path,
                    field="identity_key",
                    value=key,
                    existing_id=key_owners[key],
                )
            )
        plan.to_add.append(candidate)

    plan.to_archive = [row for row in active if row.id not in claimed]
    return plan


T = TypeVar("T")


async def _run_to_completion(work: Awaitable[T]) -> T:
    """Await ``work`` so that cancelling the caller does not interrupt it."""
    task = asyncio.ensure_future(work)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        task.add_done_callback(_log_detached_result)
        raise


def _log_detached_result(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.error("Detached sync failed", error=str(task.exception()))


class ProjectReconciler:
    """Scan, diff and apply. Every registry write is one serialized registry transaction."""

    def __init__(self, registry: ProjectRegistry, scanner: DirectoryScanner):
        self.registry = registry
        self.scanner = scanner

    async def scan(self, root: str | Path) -> ScanReport:
        """Dry run: list candidates under ``root`` without mutating anything."""
        return await self.scanner.scan(root)

    async def sync_root(self, root: str | Path) -> SyncResult:
        """Scan ``root`` and reconcile the registry against the result.

        A scan failure propagates before any mutation.
        """
        report = await self.scanner.scan(root)
        result = await self.sync(report.candidates, root=report.root)
        result.warnings = report.warnings + result.warnings
        return result

    async def sync(self, candidates: Sequence[Candidate], root: str | None = None) -> SyncResult:
        """Reconcile the registry against ``candidates`` in one transaction.

        Cancelling while waiting for the write lock discards the sync with no
        side effects. Once the lock is held the transaction runs to
        completion even if the caller is cancelled.
        """
        sync_id = uuid4().hex[:12]
        bind_sync_context(sync_id, root)
        try:
            await self.registry.acquire("sync")
            # The lock now belongs to _reconcile, which releases it
            result = await _run_to_completion(self._reconcile(list(candidates)))
        finally:
            clear_sync_context()
        return result

    async def _reconcile(self, candidates: list[Candidate]) -> SyncResult:
        async with self.registry.transaction("sync") as unit:
            active = await unit.projects.list_active()
            plan = plan_sync(candidates, active)
            added = await self._apply(unit, plan)

        result = SyncResult(
            added=[ProjectRead.model_validate(p) for p in added],
            updated=[ProjectRead.model_validate(row) for row, _ in plan.to_move],
            archived_count=len(plan.to_archive),
            unchanged_count=len(plan.unchanged),
            conflicts=plan.conflicts,
            warnings=plan.warnings,
        )
        logger.info(
            "Sync completed",
            candidates=len(candidates),
            added=len(result.added),
            updated=len(result.updated),
            archived=result.archived_count,
            unchanged=result.unchanged_count,
            conflicts=len(result.conflicts),
        )
        for conflict in result.conflicts:
            logger.warning("Sync conflict", **conflict.model_dump(mode="json"))
        return result

    async def _apply(self, unit: RegistryUnit, plan: SyncPlan) -> list[Project]:
        now = utc_now()

        # Archive first so vacated paths and keys are free for the rest
        for row in plan.to_archive:
            unit.projects.archive(row, now)
        await unit.flush()

        # Two-phase move keeps swaps and chains clear of the unique index
        if plan.to_move:
            for row, _ in plan.to_move:
                row.path = f"{_MOVE_PLACEHOLDER}{row.id}"
            await unit.flush()
            for row, new_path in plan.to_move:
                row.path = new_path
                logger.info("Project moved", project_id=str(row.id), path=new_path)
            await unit.flush()

        for row, identity_key in plan.to_backfill:
            row.identity_key = identity_key
        await unit.flush()

        added: list[Project] = []
        sort_order = await unit.projects.next_sort_order()
        for candidate in plan.to_add:
            project = _project_from_candidate(
                candidate,
                sort_order,
                keep_key=candidate.path not in plan.keyless_adds,
            )
            unit.projects.add(project)
            added.append(project)
            sort_order += 1
        await unit.flush()
        return added

    async def import_candidates(self, candidates: Sequence[Candidate]) -> ImportResult:
        """Create rows for ``candidates`` without diff matching.

        Never archives or modifies existing rows. A candidate whose path or
        identity key is held by an active row is rejected as a conflict.
        """
        ordered, _ = dedupe_candidates(candidates)
        imported: list[Project] = []
        conflicts: list[SyncConflict] = []

        async with self.registry.write("import") as unit:
            sort_order = await unit.projects.next_sort_order()
            for candidate in ordered:
                conflict = await _find_conflict(unit, candidate)
                if conflict is not None:
                    conflicts.append(conflict)
                    continue
                project = _project_from_candidate(candidate, sort_order)
                unit.projects.add(project)
                # Later candidates must see this row
                await unit.flush()
                imported.append(project)
                sort_order += 1

        logger.info("Import completed", imported=len(imported), conflicts=len(conflicts))
        return ImportResult(
            imported=[ProjectRead.model_validate(p) for p in imported],
            conflicts=conflicts,
        )

    async def upsert(self, candidate: Candidate) -> tuple[Project, bool]:
        """Create or update a single project from a user-supplied description.

        The active row holding the candidate's identity key is matched first,
        then the active row at its path. A match takes the candidate's name,
        tags, color and path, and its identity key when one is given.

        Returns:
            The stored project and whether it was created.

        Raises:
            InvalidPathError: The path is outside the home directory while
                home restriction is on.
            ConflictError: The path belongs to a different active project.
        """
        validate_project_path(candidate.path, restrict_to_home=self.scanner.restrict_to_home)

        async with self.registry.write("upsert") as unit:
            row = None
            if candidate.identity_key:
                row = await unit.projects.get_active_by_identity_key(candidate.identity_key)
            path_holder = await unit.projects.get_active_by_path(candidate.path)
            if row is None:
                row = path_holder
            elif path_holder is not None and path_holder.id != row.id:
                raise ConflictError("path", candidate.path, path_holder.id, project_id=row.id)

            if row is None:
                row = _project_from_candidate(candidate, await unit.projects.next_sort_order())
                unit.projects.add(row)
                created = True
            else:
                row.name = candidate.name
                row.path = candidate.path
                row.tags = list(candidate.tags)
                row.color = candidate.color
                if candidate.identity_key:
                    row.identity_key = candidate.identity_key
                created = False
            await unit.flush()

        logger.info(
            "Project upserted", project_id=str(row.id), path=row.path, created=created
        )
        return row, created


def _project_from_candidate(
    candidate: Candidate, sort_order: int, keep_key: bool = True
) -> Project:
    return Project(
        name=candidate.name,
        path=candidate.path,
        tags=list(candidate.tags),
        color=candidate.color,
        identity_key=candidate.identity_key if keep_key else None,
        sort_order=sort_order,
    )


async def _find_conflict(unit: RegistryUnit, candidate: Candidate) -> SyncConflict | None:
    holder = await unit.projects.get_active_by_path(candidate.path)
    if holder is not None:
        return SyncConflict(
            path=candidate.path, field="path", value=candidate.path, existing_id=holder.id
        )
    if candidate.identity_key:
        holder = await unit.projects.get_active_by_identity_key(candidate.identity_key)
        if holder is not None:
            return SyncConflict(
                path=candidate.path,
                field="identity_key",
                value=candidate.identity_key,
                existing_id=holder.id,
            )
    return None
