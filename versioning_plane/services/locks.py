import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

from versioning_plane.core.exceptions import Conflict


class KeyedLock:
    """
    Process-wide mutual exclusion keyed by an arbitrary string (a File id).

    Entries are reference counted and dropped once nobody holds or waits
    on them, so the registry does not grow with the number of files seen.
    """

    def __init__(self, timeout: float = 10.0):
        self.timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[str, Tuple[threading.Lock, int]] = {}

    def _checkout(self, key: str) -> threading.Lock:
        with self._guard:
            lock, users = self._locks.get(key, (None, 0))
            if lock is None:
                lock = threading.Lock()
            self._locks[key] = (lock, users + 1)
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            lock, users = self._locks[key]
            if users <= 1:
                del self._locks[key]
            else:
                self._locks[key] = (lock, users - 1)

    @contextmanager
    def hold(self, key: str, timeout: float | None = None) -> Iterator[None]:
        lock = self._checkout(key)
        wait = self.timeout if timeout is None else timeout
        try:
            if not lock.acquire(timeout=wait):
                raise Conflict(f"Timed out after {wait}s waiting for file {key}")
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(key)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
