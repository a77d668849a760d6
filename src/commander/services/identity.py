"""Identity key derivation for project directories.

An identity key survives renames and moves of the directory, so the
reconciler can tell "same project, new path" apart from "new project".

Strategies, in order:

1. ``git:<host>/<owner>/<repo>`` from the normalized ``origin`` remote URL.
2. ``stamp:<uuid>`` from a ``.commander-id`` file in the directory. New
   stamps are only written when stamp writing is enabled.
3. ``None``: matching falls back to path equality.
"""

import re
import subprocess
from collections.abc import Callable
from pathlib import Path
from urllib.parse import urlsplit
from uuid import uuid4

from src.commander.core.logging import get_logger

logger = get_logger(__name__)

GIT_KEY_PREFIX = "git:"
STAMP_KEY_PREFIX = "stamp:"
STAMP_FILE = ".commander-id"

# scp-like syntax: [user@]host:path, but not a Windows drive ("C:\...")
_SCP_LIKE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/\\]{2,}):(?P<path>[^\\].*)$")

GitRemoteReader = Callable[[Path, float], str | None]


def normalize_remote_url(url: str) -> str | None:
    """Normalize a git remote URL to ``host/owner/repo``.

    Strips protocol, credentials, port, trailing slashes and a ``.git``
    suffix, and lowercases the host, so that every spelling of the same
    remote maps to one value. Returns None for empty input.
    """
    url = url.strip()
    if not url:
        return None

    host = ""
    if "://" in url:
        parsed = urlsplit(url)
        if parsed.scheme.lower() != "file":
            host = (parsed.hostname or "").lower()
        path = parsed.path
    else:
        match = _SCP_LIKE.match(url)
        if match:
            host = match.group("host").lower()
            path = match.group("path")
        else:
            path = url  # Local filesystem remote

    path = path.strip().rstrip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")].rstrip("/")
    path = path.lstrip("/")

    if not path:
        return host or None
    return f"{host}/{path}" if host else path


def read_git_remote(path: Path, timeout: float) -> str | None:
    """Read ``remote.origin.url`` of the repository rooted at ``path``.

    Returns None when git is not installed, the call times out, or no
    origin remote is configured.
    """
    try:
        completed = subprocess.run(
            ["git", "-C", str(path), "config", "--get", "remote.origin.url"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError:
        return None
    except subprocess.TimeoutExpired:
        logger.warning("Timed out reading git remote", path=str(path), timeout=timeout)
        return None

    if completed.returncode != 0:
        return None
    return completed.stdout.strip() or None


class IdentityKeyDeriver:
    """Derive rename-stable identity keys for directories.

    ``derive`` is blocking (filesystem and subprocess I/O); the scanner runs it
    in worker threads.
    """

    def __init__(
        self,
        git_timeout: float = 5.0,
        write_stamps: bool = False,
        git_remote_reader: GitRemoteReader = read_git_remote,
    ):
        self.git_timeout = git_timeout
        self.write_stamps = write_stamps
        self._read_git_remote = git_remote_reader

    def derive(self, path: str | Path) -> str | None:
        """Return the identity key for ``path``, or None if it has no stable signal.

        Raises:
            OSError: If the directory cannot be inspected.
        """
        directory = Path(path)

        key = self._git_identity(directory)
        if key is not None:
            return key
        return self._stamp_identity(directory)

    def _git_identity(self, directory: Path) -> str | None:
        # Only the repository root counts; a nested directory would inherit
        # its parent repository's remote.
        if not (directory / ".git").exists():
            return None
        url = self._read_git_remote(directory, self.git_timeout)
        if url is None:
            return None
        normalized = normalize_remote_url(url)
        return f"{GIT_KEY_PREFIX}{normalized}" if normalized else None

    def _stamp_identity(self, directory: Path) -> str | None:
        stamp_file = directory / STAMP_FILE
        if stamp_file.is_file():
            content = stamp_file.read_text(encoding="utf-8").strip()
            if content:
                return f"{STAMP_KEY_PREFIX}{content}"

        if not self.write_stamps:
            return None

        stamp = str(uuid4())
        try:
            stamp_file.write_text(stamp + "\n", encoding="utf-8")
        except OSError as e:
            # Read-only directories simply stay key-less
            logger.debug("Could not write identity stamp", path=str(directory), error=str(e))
            return None
        return f"{STAMP_KEY_PREFIX}{stamp}"
