"""Path validators for scan roots and project directories."""

from pathlib import Path

from src.commander.core.errors import InvalidPathError


def normalize_project_path(path: str | Path) -> str:
    """Return the absolute, symlink-resolved form of a directory path.

    Resolution is non-strict so that paths of vanished directories still
    normalize consistently with how they were stored.
    """
    return str(Path(path).expanduser().resolve(strict=False))


def validate_scan_root(path: str | Path, restrict_to_home: bool = True) -> Path:
    """Validate a scan root and return it in canonical form.

    Raises:
        InvalidPathError: If the path is empty or lies outside the home directory
            while ``restrict_to_home`` is set.
    """
    raw = str(path).strip()
    if not raw:
        raise InvalidPathError(raw, "path is empty")

    canonical = Path(normalize_project_path(raw))

    if restrict_to_home:
        home = Path.home().resolve()
        if canonical != home and home not in canonical.parents:
            raise InvalidPathError(str(canonical), "must be within the home directory")

    return canonical


def validate_project_path(path: str | Path, restrict_to_home: bool = True) -> str:
    """Validate a single project directory under the same rules as a scan root."""
    return str(validate_scan_root(path, restrict_to_home=restrict_to_home))
