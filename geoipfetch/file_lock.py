"""A file lock that guards against concurrent runs in separate processes."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import filelock

logger = logging.getLogger(__name__)


class FileLock:
    """An advisory lock on a file.

    Acquiring it again from the same object succeeds; it protects against
    other processes, not against other threads of this one.
    """

    def __init__(self, path: str | os.PathLike[str], verbose: bool = False) -> None:
        self.path = Path(path)
        try:
            self.path.parent.mkdir(mode=0o750, parents=True, exist_ok=True)
        except OSError as exc:
            raise OSError(f"creating lock file directory: {exc}") from exc
        self.verbose = verbose
        if verbose:
            logger.info("Initializing file lock at %s", self.path)
        self._lock = filelock.FileLock(str(self.path))

    def acquire(self) -> None:
        """Take the lock without waiting; raise TimeoutError if it is held elsewhere."""
        try:
            self._lock.acquire(timeout=0)
        except filelock.Timeout as exc:
            raise TimeoutError(
                f"lock {self.path} already acquired by another process"
            ) from exc
        except OSError as exc:
            raise OSError(f"acquiring file lock at {self.path}: {exc}") from exc
        if self.verbose:
            logger.info("Acquired lock file at %s", self.path)

    def release(self) -> None:
        """Release the lock completely."""
        try:
            self._lock.release(force=True)
        except OSError as exc:
            raise OSError(f"releasing file lock at {self.path}: {exc}") from exc
        if self.verbose:
            logger.info("Lock file %s successfully released", self.path)

    def __enter__(self) -> FileLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()