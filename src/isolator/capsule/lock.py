"""Exclusive lock serializing isolation runs that share a root.

The lock file sits next to the root (<root>.lock), not inside it, so an
empty_root_dir wipe never removes a lock another run is holding.
"""

import logging
import os
from pathlib import Path
from typing import Any, TextIO

from isolator.errors import RootLockedError

logger = logging.getLogger(__name__)


def _lock_file(handle: TextIO, blocking: bool) -> None:
    if os.name == "nt":
        import msvcrt

        mode = msvcrt.LK_LOCK if blocking else msvcrt.LK_NBLCK  # type: ignore[attr-defined]
        msvcrt.locking(handle.fileno(), mode, 1)  # type: ignore[attr-defined]
        return
    import fcntl

    flags = fcntl.LOCK_EX if blocking else fcntl.LOCK_EX | fcntl.LOCK_NB
    fcntl.flock(handle.fileno(), flags)


def _unlock_file(handle: TextIO) -> None:
    if os.name == "nt":
        import msvcrt

        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        return
    import fcntl

    fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class RootLock:
    """
    Context manager holding an exclusive lock on an isolation root.

    Usage:
        with RootLock(root_dir):
            ...  # wipe, write, install, link

    Attributes:
        path: The lock file
        blocking: Wait for the lock instead of failing fast
    """

    def __init__(self, root_dir: Path | str, blocking: bool = True) -> None:
        root_dir = Path(root_dir)
        self.path = root_dir.parent / f"{root_dir.name}.lock"
        self.blocking = blocking
        self._handle: TextIO | None = None

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = self.path.open("a+", encoding="utf-8")
        try:
            _lock_file(handle, self.blocking)
        except OSError as e:
            handle.close()
            raise RootLockedError(capsule_path=str(self.path.parent), lock_path=str(self.path)) from e
        self._handle = handle
        logger.debug("acquired isolation root lock %s", self.path)

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            _unlock_file(self._handle)
        finally:
            self._handle.close()
            self._handle = None
        logger.debug("released isolation root lock %s", self.path)

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def __enter__(self) -> "RootLock":
        self.acquire()
        return self

    def __exit__(self, *args: Any) -> None:
        self.release()
