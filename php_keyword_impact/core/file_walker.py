"""Parallel recursive discovery of source files."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from threading import Lock

from ..constants import PHP_EXTENSIONS

logger = logging.getLogger(__name__)


class _DirectoryWalker:
    """Shared state of one discovery run.

    Each directory is read by its own pool task, which submits one new task
    per subdirectory. Matching files go into a single list; the append is
    the only thing done under the lock.
    """

    def __init__(self, executor: ThreadPoolExecutor, extensions: Iterable[str]) -> None:
        self.executor = executor
        self.extensions = frozenset(extensions)
        self.files: list[Path] = []
        self._lock = Lock()

    def submit(self, directory: Path) -> Future[list[Future]]:
        return self.executor.submit(self.read_dir, directory)

    def read_dir(self, directory: Path) -> list[Future]:
        """Collect matching files in *directory* and spawn tasks for its subdirectories."""
        children: list[Future] = []
        try:
            with os.scandir(directory) as entries:
                for entry in entries:
                    # Symlinked directories are not followed, which rules out
                    # cycles and duplicate paths.
                    if entry.is_dir(follow_symlinks=False):
                        children.append(self.submit(Path(entry.path)))
                    elif entry.is_file() and self._matches(entry.name):
                        with self._lock:
                            self.files.append(Path(entry.path))
        except OSError as e:
            logger.warning(f"Skipping unreadable directory {directory}: {e}")
        return children

    def _matches(self, filename: str) -> bool:
        return os.path.splitext(filename)[1] in self.extensions


def discover_files(
    root: Path,
    extensions: Iterable[str] = PHP_EXTENSIONS,
    max_workers: int | None = None,
) -> list[Path]:
    """Recursively list files under *root* whose extension is in *extensions*.

    Args:
        root: Directory to walk. A missing directory yields an empty list.
        extensions: Accepted extensions including the dot, e.g. ``".php"``.
        max_workers: Thread pool size; the executor's default when ``None``.

    Returns:
        Every matching path exactly once, in no particular order.
    """
    root = Path(root)
    if not root.is_dir():
        return []

    with ThreadPoolExecutor(
        max_workers=max_workers, thread_name_prefix="discover"
    ) as executor:
        walker = _DirectoryWalker(executor, extensions)
        pending = [walker.submit(root)]
        # A task only finishes after submitting its children, so draining
        # this stack waits for the whole tree.
        while pending:
            pending.extend(pending.pop().result())

    logger.debug(f"Discovered {len(walker.files)} files under {root}")
    return walker.files
