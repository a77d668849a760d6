"""Reconciliation against an in-memory registry."""

import pytest
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.commander.core.errors import ConflictError, InvalidPathError, StoreError
from src.commander.models import ProjectState
from src.commander.schemas.project import Candidate
from src.commander.services.reconciler import ProjectReconciler
from src.commander.services.registry import ProjectRegistry
from src.commander.services.scanner import DirectoryScanner
from tests.factories import ProjectFactory
from tests.helpers import active_by_path, candidate, store_projects

pytestmark = pytest.mark.integration


async def archived(registry: ProjectRegistry):
    async with registry.read() as unit:
        return await unit.projects.list_archived()


class TestSync:
    async def test_first_sync_adds_everything(self, reconciler: ProjectReconciler):
        result = await reconciler.sync(
            [candidate("/w/a", "git:h/o/a"), candidate("/w/b")]
        )
        assert sorted(p.path for p in result.added) == ["/w/a", "/w/b"]
        assert result.updated == []
        assert result.archived_count == 0
        assert result.unchanged_count == 0

    async def test_sync_is_idempotent(self, reconciler: ProjectReconciler):
        candidates = [candidate("/w/a", "git:h/o/a"), candidate("/w/b")]
        await reconciler.sync(candidates)
        second = await reconciler.sync(candidates)

        assert second.added == []
        assert second.updated == []
        assert second.archived_count == 0
        assert second.unchanged_count == 2
        assert second.is_noop

    async def test_rename_keeps_id(self, reconciler: ProjectReconciler, registry):
        first = await reconciler.sync([candidate("/w/a", "git:h/o/a")])
        original = first.added[0]

        result = await reconciler.sync([candidate("/w/renamed", "git:h/o/a")])

        assert [p.id for p in result.updated] == [original.id]
        assert result.updated[0].path == "/w/renamed"
        assert result.added == [] and result.archived_count == 0
        rows = await active_by_path(registry)
        assert list(rows) == ["/w/renamed"]
        assert rows["/w/renamed"].id == original.id

    async def test_move_keeps_user_metadata(self, reconciler: ProjectReconciler, registry):
        row = ProjectFactory.with_key(
            path="/w/a", identity_key="git:h/o/a", name="Custom", tags=["client"], color="#ff0000"
        )
        await store_projects(registry, row)

        await reconciler.sync([candidate("/w/moved", "git:h/o/a", name="moved")])

        moved = (await active_by_path(registry))["/w/moved"]
        assert (moved.name, moved.tags, moved.color) == ("Custom", ["client"], "#ff0000")

    async def test_keyless_rename_splits(self, reconciler: ProjectReconciler, registry):
        first = await reconciler.sync([candidate("/w/b")])
        old_id = first.added[0].id

        result = await reconciler.sync([candidate("/w/b2")])

        assert [p.path for p in result.added] == ["/w/b2"]
        assert result.added[0].id != old_id
        assert result.archived_count == 1
        [old] = await archived(registry)
        assert old.id == old_id and old.path == "/w/b"

    async def test_vanished_directory_is_archived(self, reconciler: ProjectReconciler, registry):
        await reconciler.sync([candidate("/w/a"), candidate("/w/b")])

        result = await reconciler.sync([candidate("/w/a")])

        assert result.archived_count == 1
        assert result.unchanged_count == 1
        [gone] = await archived(registry)
        assert gone.path == "/w/b"
        assert gone.state is ProjectState.ARCHIVED
        assert gone.archived_at is not None

    async def test_key_of_archived_row_creates_new_project(
        self, reconciler: ProjectReconciler, registry
    ):
        first = await reconciler.sync([candidate("/w/a", "git:h/o/a")])
        await reconciler.sync([])

        result = await reconciler.sync([candidate("/w/a", "git:h/o/a")])

        assert len(result.added) == 1
        assert result.added[0].id != first.added[0].id
        assert len(await archived(registry)) == 1

    async def test_swap_paths(self, reconciler: ProjectReconciler, registry):
        await reconciler.sync([candidate("/w/x", "git:h/o/a"), candidate("/w/y", "git:h/o/b")])

        result = await reconciler.sync(
            [candidate("/w/y", "git:h/o/a"), candidate("/w/x", "git:h/o/b")]
        )

        assert len(result.updated) == 2
        rows = await active_by_path(registry)
        assert rows["/w/y"].identity_key == "git:h/o/a"
        assert rows["/w/x"].identity_key == "git:h/o/b"

    async def test_move_into_vacated_path(self, reconciler: ProjectReconciler, registry):
        # a moves onto b's old path while b disappears in the same sync
        await reconciler.sync([candidate("/w/a", "git:h/o/a"), candidate("/w/b")])

        result = await reconciler.sync([candidate("/w/b", "git:h/o/a")])

        assert result.archived_count == 1
        assert [p.path for p in result.updated] == ["/w/b"]
        assert (await active_by_path(registry))["/w/b"].identity_key == "git:h/o/a"

    async def test_path_match_backfills_key(self, reconciler: ProjectReconciler, registry):
        await reconciler.sync([candidate("/w/a")])

        result = await reconciler.sync([candidate("/w/a", "stamp:42")])

        assert result.unchanged_count == 1
        assert (await active_by_path(registry))["/w/a"].identity_key == "stamp:42"

    async def test_path_match_keeps_stored_key(self, reconciler: ProjectReconciler, registry):
        await reconciler.sync([candidate("/w/a", "git:h/o/a")])

        result = await reconciler.sync([candidate("/w/a", "git:h/o/forked")])

        assert result.unchanged_count == 1
        assert result.is_noop
        assert (await active_by_path(registry))["/w/a"].identity_key == "git:h/o/a"

    async def test_claimed_key_reported_as_conflict(
        self, reconciler: ProjectReconciler, registry
    ):
        await reconciler.sync([candidate("/w/a", "git:h/o/a"), candidate("/w/b")])

        # /w/b became a second clone of the same remote
        result = await reconciler.sync(
            [candidate("/w/a", "git:h/o/a"), candidate("/w/b", "git:h/o/a")]
        )

        assert result.unchanged_count == 2
        assert result.archived_count == 0
        [conflict] = result.conflicts
        assert conflict.path == "/w/b"
        assert conflict.field == "identity_key"
        rows = await active_by_path(registry)
        assert rows["/w/b"].identity_key is None
        assert conflict.existing_id == rows["/w/a"].id

    async def test_new_clone_of_tracked_repo_added_without_key(
        self, reconciler: ProjectReconciler, registry
    ):
        await reconciler.sync([candidate("/w/a", "git:h/o/a")])

        result = await reconciler.sync(
            [candidate("/w/a", "git:h/o/a"), candidate("/w/copy", "git:h/o/a")]
        )

        assert [p.path for p in result.added] == ["/w/copy"]
        assert result.added[0].identity_key is None
        assert len(result.conflicts) == 1

    async def test_duplicate_candidates_warn(self, reconciler: ProjectReconciler):
        result = await reconciler.sync([candidate("/w/a"), candidate("/w/a")])
        assert len(result.added) == 1
        assert [w.path for w in result.warnings] == ["/w/a"]

    async def test_new_rows_append_to_sort_order(
        self, reconciler: ProjectReconciler, registry
    ):
        await store_projects(registry, ProjectFactory.build(path="/w/first", sort_order=7))

        result = await reconciler.sync(
            [candidate("/w/first"), candidate("/w/n1"), candidate("/w/n2")]
        )

        assert [p.sort_order for p in result.added] == [8, 9]

    async def test_commit_failure_rolls_back_everything(
        self, reconciler: ProjectReconciler, registry, monkeypatch: pytest.MonkeyPatch
    ):
        await reconciler.sync([candidate("/w/a", "git:h/o/a"), candidate("/w/b")])
        before = await active_by_path(registry)

        async def failing_commit(self):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(AsyncSession, "commit", failing_commit)
        with pytest.raises(StoreError):
            await reconciler.sync([candidate("/w/a2", "git:h/o/a"), candidate("/w/c")])
        monkeypatch.undo()

        after = await active_by_path(registry)
        assert {p: r.id for p, r in after.items()} == {p: r.id for p, r in before.items()}
        assert await archived(registry) == []


class TestImport:
    async def test_import_creates_rows(self, reconciler: ProjectReconciler, registry):
        result = await reconciler.import_candidates(
            [candidate("/w/a", "git:h/o/a"), candidate("/w/b")]
        )
        assert len(result.imported) == 2
        assert result.conflicts == []
        assert set(await active_by_path(registry)) == {"/w/a", "/w/b"}

    async def test_import_never_archives(self, reconciler: ProjectReconciler, registry):
        await reconciler.sync([candidate("/w/a")])
        await reconciler.import_candidates([candidate("/w/b")])
        assert set(await active_by_path(registry)) == {"/w/a", "/w/b"}

    async def test_import_rejects_path_and_key_collisions(
        self, reconciler: ProjectReconciler, registry
    ):
        await reconciler.sync([candidate("/w/a", "git:h/o/a")])

        result = await reconciler.import_candidates(
            [candidate("/w/a"), candidate("/w/other", "git:h/o/a"), candidate("/w/new")]
        )

        assert [p.path for p in result.imported] == ["/w/new"]
        assert sorted(c.field for c in result.conflicts) == ["identity_key", "path"]
        assert (await active_by_path(registry))["/w/a"].name == "a"

    async def test_import_collision_within_batch(self, reconciler: ProjectReconciler):
        result = await reconciler.import_candidates(
            [candidate("/w/a", "git:h/o/a"), candidate("/w/b", "git:h/o/a")]
        )
        assert [p.path for p in result.imported] == ["/w/a"]
        assert [c.path for c in result.conflicts] == ["/w/b"]

    async def test_import_ignores_archived_rows(self, reconciler: ProjectReconciler, registry):
        await store_projects(
            registry, ProjectFactory.archived(path="/w/a", identity_key="git:h/o/a")
        )
        result = await reconciler.import_candidates([candidate("/w/a", "git:h/o/a")])
        assert len(result.imported) == 1


class TestUpsert:
    async def test_upsert_creates_project(self, reconciler: ProjectReconciler, registry):
        project, created = await reconciler.upsert(
            Candidate(path="/w/a", name="Alpha", tags=["web"], color="#ff0000")
        )

        assert created is True
        stored = (await active_by_path(registry))["/w/a"]
        assert stored.id == project.id
        assert (stored.name, stored.tags, stored.color) == ("Alpha", ["web"], "#ff0000")

    async def test_upsert_by_path_updates_metadata(self, reconciler: ProjectReconciler, registry):
        await reconciler.sync([candidate("/w/a")])
        original = (await active_by_path(registry))["/w/a"]

        project, created = await reconciler.upsert(
            Candidate(path="/w/a", name="Renamed", tags=["cli"], identity_key="stamp:7")
        )

        assert created is False
        assert project.id == original.id
        stored = (await active_by_path(registry))["/w/a"]
        assert (stored.name, stored.tags, stored.identity_key) == ("Renamed", ["cli"], "stamp:7")

    async def test_upsert_by_key_moves_project(self, reconciler: ProjectReconciler, registry):
        await reconciler.sync([candidate("/w/a", "git:h/o/a")])
        original = (await active_by_path(registry))["/w/a"]

        project, created = await reconciler.upsert(
            Candidate(path="/w/moved", name="a", identity_key="git:h/o/a")
        )

        assert created is False
        assert project.id == original.id
        assert set(await active_by_path(registry)) == {"/w/moved"}

    async def test_upsert_path_held_by_other_project_conflicts(
        self, reconciler: ProjectReconciler, registry
    ):
        await reconciler.sync([candidate("/w/a", "git:h/o/a"), candidate("/w/b", "git:h/o/b")])
        rows = await active_by_path(registry)

        with pytest.raises(ConflictError) as exc_info:
            await reconciler.upsert(Candidate(path="/w/b", name="a", identity_key="git:h/o/a"))

        assert exc_info.value.field == "path"
        assert exc_info.value.existing_id == rows["/w/b"].id
        after = await active_by_path(registry)
        assert {p: r.id for p, r in after.items()} == {p: r.id for p, r in rows.items()}

    async def test_upsert_outside_home_rejected(self, registry, deriver):
        scanner = DirectoryScanner(deriver, restrict_to_home=True)
        reconciler = ProjectReconciler(registry, scanner)

        with pytest.raises(InvalidPathError):
            await reconciler.upsert(Candidate(path="/", name="root"))

        assert await active_by_path(registry) == {}


async def test_sync_logs_carry_sync_id(reconciler: ProjectReconciler, capturing_logger):
    await reconciler.sync([candidate("/w/a")], root="/w")

    [completed] = [c for c in capturing_logger.calls if c.kwargs.get("event") == "Sync completed"]
    assert completed.kwargs["sync_id"]
    assert completed.kwargs["scan_root"] == "/w"
    assert completed.kwargs["added"] == 1


    capturing_logger.calls.clear()
    structlog.get_logger().info("after sync")
    assert "sync_id" not in capturing_logger.calls[0].kwargs
