"""Test helper functions for building directory trees and registry rows."""

from pathlib import Path

from src.commander.models import Project
from src.commander.schemas.project import Candidate
from src.commander.services.registry import ProjectRegistry

FAKE_REMOTE_FILE = "origin"


def read_fake_git_remote(path: Path, timeout: float) -> str | None:
    """Stand-in for ``git config --get remote.origin.url``.

    Reads the remote from ``<path>/.git/origin`` so the value moves with the
    directory, like a real repository's config does.
    """
    remote = path / ".git" / FAKE_REMOTE_FILE
    if not remote.is_file():
        return None
    return remote.read_text(encoding="utf-8").strip() or None


def make_git_project(parent: Path, name: str, remote: str | None = None) -> Path:
    """Create a directory that looks like a git checkout."""
    directory = parent / name
    (directory / ".git").mkdir(parents=True)
    if remote is not None:
        (directory / ".git" / FAKE_REMOTE_FILE).write_text(remote + "\n", encoding="utf-8")
    return directory


def make_marker_project(parent: Path, name: str, marker: str = "package.json") -> Path:
    """Create a non-git project directory identified by a manifest file."""
    directory = parent / name
    directory.mkdir(parents=True)
    (directory / marker).write_text("{}\n", encoding="utf-8")
    return directory


def candidate(
    path: str | Path, identity_key: str | None = None, name: str | None = None
) -> Candidate:
    """Build a candidate with the directory name as default project name."""
    path = str(path)
    return Candidate(path=path, name=name or Path(path).name, identity_key=identity_key)


async def store_projects(registry: ProjectRegistry, *projects: Project) -> list[Project]:
    """Persist prebuilt rows in one registry transaction."""
    async with registry.write("test_setup") as unit:
        for project in projects:
            unit.projects.add(project)
    return list(projects)


async def active_by_path(registry: ProjectRegistry) -> dict[str, Project]:
    async with registry.read() as unit:
        return {p.path: p for p in await unit.projects.list_active()}
