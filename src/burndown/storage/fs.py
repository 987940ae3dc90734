"""Atomic file writes, directory management, and root discovery."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

BURNDOWN_DIR = ".burndown"
BURNDOWN_ROOT_ENV = "BURNDOWN_ROOT"


def _fsync_directory(path: Path) -> None:
    """Fsync a directory to ensure metadata (e.g. renames) is durable.

    Some platforms (notably macOS HFS+) may not support fsync on directory
    file descriptors, so ``OSError`` is silently ignored.
    """
    try:
        fd = os.open(str(path), os.O_RDONLY)
        try:
            os.fsync(fd)
        finally:
            os.close(fd)
    except OSError:
        pass


def atomic_write(path: Path, content: str | bytes) -> None:
    """Write content to path atomically via temp file + fsync + rename.

    Raises:
        FileNotFoundError: If the parent directory does not exist.
    """
    parent = path.parent
    if not parent.is_dir():
        raise FileNotFoundError(f"Parent directory does not exist: {parent}")

    data = content.encode("utf-8") if isinstance(content, str) else content

    fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".tmp.")
    closed = False
    try:
        # os.write() can short-write; loop until all bytes are flushed.
        mv = memoryview(data)
        while mv:
            written = os.write(fd, mv)
            mv = mv[written:]
        os.fsync(fd)
        os.close(fd)
        closed = True
        os.replace(tmp_path, path)
        _fsync_directory(parent)
    except BaseException:
        if not closed:
            os.close(fd)
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def ensure_burndown_dirs(root: Path) -> None:
    """Create the top-level .burndown/ structure under root."""
    base = root / BURNDOWN_DIR
    for subdir in ("projects", "locks"):
        (base / subdir).mkdir(parents=True, exist_ok=True)


def project_dir(burndown_dir: Path, project: str) -> Path:
    """Return the directory holding one project's rows and event log."""
    return burndown_dir / "projects" / project


def ensure_project_dirs(burndown_dir: Path, project: str) -> Path:
    """Create a project's directory structure and return its path."""
    base = project_dir(burndown_dir, project)
    for subdir in ("tasks", "milestones"):
        (base / subdir).mkdir(parents=True, exist_ok=True)
    log = base / "events.jsonl"
    if not log.exists():
        log.touch()
    return base


class BurndownRootError(Exception):
    """Raised when BURNDOWN_ROOT env var is set but invalid."""


def find_root(start: Path | None = None) -> Path | None:
    """Find the directory containing .burndown/.

    Checks BURNDOWN_ROOT first; if set it must be valid (no fallback to
    walk-up).  Otherwise walks up from *start* (defaults to cwd).

    Raises:
        BurndownRootError: If BURNDOWN_ROOT is set but invalid.
    """
    env_root = os.environ.get(BURNDOWN_ROOT_ENV)
    if env_root is not None:
        if not env_root:
            raise BurndownRootError("BURNDOWN_ROOT is set but empty")
        env_path = Path(env_root)
        if not env_path.is_dir():
            raise BurndownRootError(
                f"BURNDOWN_ROOT points to a path that does not exist: {env_root}"
            )
        if not (env_path / BURNDOWN_DIR).is_dir():
            raise BurndownRootError(
                f"BURNDOWN_ROOT points to a directory with no {BURNDOWN_DIR}/ inside: {env_root}"
            )
        return env_path

    current = (start or Path.cwd()).resolve()
    while True:
        if (current / BURNDOWN_DIR).is_dir():
            return current
        parent = current.parent
        if parent == current:
            return None
        current = parent


def jsonl_append(path: Path, line: str) -> None:
    """Append a single newline-terminated line to a JSONL file.

    The caller must already hold the project lock.
    """
    with open(path, "a", encoding="utf-8") as fh:
        fh.write(line)
        fh.flush()
        os.fsync(fh.fileno())
    _fsync_directory(path.parent)
