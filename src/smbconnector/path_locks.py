"""Path-scoped mutual exclusion.

Operations addressing the same share path serialize; operations on disjoint
paths never block each other. Locks are reentrant per thread, so a listener
holding a file's lock can run the post-action (which locks the same path)
without deadlocking.

Public API:
    LockFactory: Protocol for a path-keyed lock provider
    PathLockFactory: In-process implementation
    LockTimeoutError: Lock could not be acquired within timeout

Example:
    >>> locks = PathLockFactory()
    >>> with locks.lock("/share/in/a.txt"):
    ...     pass  # exclusive access to the path
    >>> with locks.lock_all(["/share/in/a.txt", "/share/out/a.txt"]):
    ...     pass  # both paths, acquired in sorted order
"""

import logging
import threading
from collections.abc import Generator, Iterable
from contextlib import ExitStack, contextmanager
from typing import ContextManager, Protocol

from smbconnector.exceptions import LockTimeoutError

logger = logging.getLogger(__name__)


class LockFactory(Protocol):
    """Mutual-exclusion provider keyed by path."""

    def lock(self, path: str, timeout: float | None = None) -> ContextManager[None]: ...

    def lock_all(self, paths: Iterable[str], timeout: float | None = None) -> ContextManager[None]: ...


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.RLock()
        self.users = 0


class PathLockFactory:
    """Reentrant per-path locks with reference-counted cleanup."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[str, _Entry] = {}

    def _checkout(self, path: str) -> _Entry:
        with self._guard:
            entry = self._locks.get(path)
            if entry is None:
                entry = _Entry()
                self._locks[path] = entry
            entry.users += 1
            return entry

    def _checkin(self, path: str, entry: _Entry) -> None:
        with self._guard:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[path]

    @contextmanager
    def lock(self, path: str, timeout: float | None = None) -> Generator[None, None, None]:
        """Hold the lock for ``path``.

        Args:
            path: Resolved share path
            timeout: Seconds to wait (None blocks until available)

        Raises:
            LockTimeoutError: Lock not acquired within timeout
        """
        entry = self._checkout(path)
        try:
            acquired = entry.lock.acquire(timeout=-1 if timeout is None else timeout)
            if not acquired:
                raise LockTimeoutError(
                    f"Failed to acquire lock for {path} after {timeout} seconds. "
                    "Another operation is holding it."
                )
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            self._checkin(path, entry)

    @contextmanager
    def lock_all(
        self, paths: Iterable[str], timeout: float | None = None
    ) -> Generator[None, None, None]:
        """Hold the locks of several paths, acquired in sorted order."""
        with ExitStack() as stack:
            for path in sorted(set(paths)):
                stack.enter_context(self.lock(path, timeout=timeout))
            yield

    def is_locked(self, path: str) -> bool:
        """Whether any thread currently holds or waits for ``path``."""
        with self._guard:
            return path in self._locks


__all__ = ["LockFactory", "LockTimeoutError", "PathLockFactory"]
