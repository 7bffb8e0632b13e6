"""Per-path exclusive locks.

A locker serializes access to one record path. Acquisition waits at most
``timeout`` seconds (a negative timeout waits forever) and raises
:class:`CacheLockError` when the wait runs out. Release is guaranteed on
every exit path of the ``with`` block.

Two implementations are provided:
- FileLocker: OS-level advisory lock on a sidecar ``.lock`` file (filelock),
  safe across processes sharing the directory
- ThreadLocker: process-local mutex keyed by path, for single-process use
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import ContextManager, Dict, Iterator, Optional

from filelock import FileLock, Timeout

from volatilestore.base.cache import CacheError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 10.0
LOCK_DIR_NAME = ".locks"


class CacheLockError(CacheError):
    """Raised when unable to acquire a lock within the timeout."""

    pass


class PathLocker(ABC):
    """Interface for per-path exclusive locks.

    Args:
        timeout: Default wait in seconds when ``acquire`` gets none
    """

    def __init__(self, timeout: float = DEFAULT_LOCK_TIMEOUT):
        self.timeout = timeout

    def _wait_for(self, timeout: Optional[float]) -> float:
        return self.timeout if timeout is None else timeout

    @abstractmethod
    def acquire(
        self, path: Path, timeout: Optional[float] = None
    ) -> ContextManager[None]:
        """Hold the exclusive lock for ``path`` for the duration of a ``with``.

        Raises:
            CacheLockError: If the lock is not acquired in time
        """
        pass


class FileLocker(PathLocker):
    """Cross-process locker backed by ``filelock.FileLock``.

    Lock files live in ``lock_dir`` as ``<record filename>.lock``. The record
    file itself is never opened by the lock.

    Examples:
        >>> locker = FileLocker(Path("/tmp/cache/.locks"), timeout=5)
        >>> with locker.acquire(Path("/tmp/cache/key.cache")):
        ...     pass
    """

    def __init__(self, lock_dir: Path, timeout: float = DEFAULT_LOCK_TIMEOUT):
        super().__init__(timeout)
        self.lock_dir = Path(lock_dir)

    def lock_path_for(self, path: Path) -> Path:
        return self.lock_dir / f"{Path(path).name}.lock"

    @contextmanager
    def acquire(self, path: Path, timeout: Optional[float] = None) -> Iterator[None]:
        wait = self._wait_for(timeout)
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        lock = FileLock(str(self.lock_path_for(path)), timeout=wait)

        try:
            lock.acquire()
        except Timeout as e:
            raise CacheLockError(
                f"Timeout acquiring lock for {path} after {wait} seconds"
            ) from e

        try:
            yield
        finally:
            lock.release()


class ThreadLocker(PathLocker):
    """Process-local locker: one ``threading.Lock`` per path.

    Only serializes threads of the current process.
    """

    def __init__(self, timeout: float = DEFAULT_LOCK_TIMEOUT):
        super().__init__(timeout)
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, path: Path) -> threading.Lock:
        key = str(Path(path).absolute())
        with self._guard:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def acquire(self, path: Path, timeout: Optional[float] = None) -> Iterator[None]:
        wait = self._wait_for(timeout)
        lock = self._lock_for(path)

        # threading.Lock treats -1 as "wait forever"
        if not lock.acquire(timeout=wait if wait >= 0 else -1):
            raise CacheLockError(
                f"Timeout acquiring lock for {path} after {wait} seconds"
            )

        try:
            yield
        finally:
            lock.release()
