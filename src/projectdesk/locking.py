"""Cross-process workspace lock.

Uses ``fcntl.flock`` on a lock file. The lock is not reentrant: a second
``WorkspaceLock`` on the same path blocks even inside one process.
"""

from __future__ import annotations

import fcntl
import logging
import os
import time
from pathlib import Path

from projectdesk.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class WorkspaceLock:
    """Exclusive lock with a bounded wait.

    Example:
        >>> with WorkspaceLock(path).hold(timeout=30):
        ...     process()
    """

    def __init__(self, path: Path, poll_interval: float = 0.1):
        self.path = Path(path)
        self.poll_interval = poll_interval
        self._fd: int | None = None

    @property
    def is_held(self) -> bool:
        return self._fd is not None

    def acquire(self, timeout: float) -> None:
        """Acquire the lock, waiting at most ``timeout`` seconds.

        Raises:
            LockTimeoutError: If the lock is still held elsewhere after the wait.
        """
        if self._fd is not None:
            raise RuntimeError(f"Lock {self.path} is already held by this object")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        deadline = time.monotonic() + max(timeout, 0)
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    os.close(fd)
                    raise LockTimeoutError(
                        f"Could not acquire workspace lock within {timeout:g}s",
                        details=str(self.path),
                    ) from None
                time.sleep(self.poll_interval)
        self._fd = fd
        logger.debug(f"Acquired lock {self.path}")

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None
            logger.debug(f"Released lock {self.path}")

    def hold(self, timeout: float) -> _HeldLock:
        return _HeldLock(self, timeout)


class _HeldLock:
    """Context manager that acquires on enter and always releases on exit."""

    def __init__(self, lock: WorkspaceLock, timeout: float):
        self.lock = lock
        self.timeout = timeout

    def __enter__(self) -> WorkspaceLock:
        self.lock.acquire(self.timeout)
        return self.lock

    def __exit__(self, exc_type, exc, tb) -> None:
        self.lock.release()
