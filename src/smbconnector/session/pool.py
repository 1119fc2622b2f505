"""Session Pool Module - exclusive checkout and reuse of SMB sessions.

Philosophy:
- One session per concurrent operation (never shared while checked out)
- Sessions created on demand up to a limit
- Validation on return; invalid sessions are destroyed, never reused
- Shutdown drains checked-out sessions before disconnecting

Public API (the "studs"):
    SessionPool: acquire / release / session() / connection() / shutdown
    PoolConfig: Configuration for the pool (re-exported from config)
"""

import logging
import threading
import time
from collections import deque
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from smbconnector.config import PoolConfig
from smbconnector.exceptions import (
    InvalidSessionReturnError,
    PoolExhaustedError,
)
from smbconnector.filesystem import SmbFileSystemConnection
from smbconnector.path_locks import LockFactory, PathLockFactory
from smbconnector.session.session_manager import Session, SessionManager

logger = logging.getLogger(__name__)


class SessionPool:
    """Bounded pool of SMB sessions for one connection config.

    Example:
        >>> pool = SessionPool(SessionManager(config), PoolConfig(max_sessions=4))
        >>> with pool.connection() as fs:
        ...     fs.list("incoming")
        >>> pool.shutdown()
    """

    def __init__(
        self,
        manager: SessionManager,
        config: PoolConfig | None = None,
        lock_factory: LockFactory | None = None,
    ):
        """Initialize session pool.

        Args:
            manager: Creates, validates and disconnects sessions
            config: Pool limits (default: PoolConfig())
            lock_factory: Path lock provider handed to every connection
        """
        self.manager = manager
        self._config = config or PoolConfig()
        self.lock_factory = lock_factory or PathLockFactory()

        self._idle: deque[Session] = deque()
        self._checked_out: set[Session] = set()
        self._pending = 0
        self._closed = False
        self._lock = threading.Lock()
        self._available = threading.Condition(self._lock)
        self._stats = {
            "sessions_created": 0,
            "sessions_reused": 0,
            "sessions_destroyed": 0,
        }

    @property
    def config(self) -> PoolConfig:
        return self._config

    def _size(self) -> int:
        return len(self._idle) + len(self._checked_out) + self._pending

    def acquire(self, timeout: float | None = None) -> Session:
        """Check out a session.

        Reuses an idle session that still validates, otherwise creates one if
        under the limit, otherwise waits for a release.

        Args:
            timeout: Seconds to wait for a free slot (default: config.acquire_timeout)

        Returns:
            Session exclusive to the caller until released

        Raises:
            PoolExhaustedError: No session available within timeout, or pool closed
            SmbConnectionError: Creating a new session failed
        """
        timeout = self._config.acquire_timeout if timeout is None else timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        while True:
            with self._available:
                while True:
                    if self._closed:
                        raise PoolExhaustedError("Session pool is shut down")
                    if self._idle:
                        candidate = self._idle.popleft()
                        self._pending += 1
                        create = False
                        break
                    if self._size() < self._config.max_sessions:
                        candidate = None
                        self._pending += 1
                        create = True
                        break
                    remaining = None if deadline is None else deadline - time.monotonic()
                    if remaining is not None and remaining <= 0:
                        raise PoolExhaustedError(
                            f"No SMB session available within {timeout} seconds "
                            f"(max_sessions={self._config.max_sessions})"
                        )
                    self._available.wait(remaining)

            # Connect and validate OUTSIDE the lock to avoid blocking other threads
            if create:
                try:
                    session = self.manager.connect()
                except BaseException:
                    self._abandon_slot()
                    raise
                self._check_out(session, created=True)
                return session

            if self.manager.validate(candidate).valid:
                self._check_out(candidate, created=False)
                return candidate

            logger.debug(f"Idle {candidate!r} failed validation, destroying it")
            self.manager.disconnect(candidate)
            self._abandon_slot(destroyed=True)

    def _check_out(self, session: Session, created: bool) -> None:
        with self._available:
            self._pending -= 1
            self._checked_out.add(session)
            self._stats["sessions_created" if created else "sessions_reused"] += 1

    def _abandon_slot(self, destroyed: bool = False) -> None:
        with self._available:
            self._pending -= 1
            if destroyed:
                self._stats["sessions_destroyed"] += 1
            self._available.notify_all()

    def release(self, session: Session) -> None:
        """Return a checked-out session.

        Raises:
            InvalidSessionReturnError: Session failed validation; it was
                destroyed and its slot freed
        """
        try:
            self.manager.on_return(session)
        except InvalidSessionReturnError:
            self.invalidate(session)
            raise

        with self._available:
            self._checked_out.discard(session)
            if self._closed or len(self._idle) >= self._config.max_idle:
                keep = False
            else:
                self._idle.append(session)
                keep = True
            self._available.notify_all()

        if not keep:
            self.manager.disconnect(session)
            with self._lock:
                self._stats["sessions_destroyed"] += 1

    def invalidate(self, session: Session) -> None:
        """Destroy a checked-out session and free its slot."""
        self.manager.disconnect(session)
        with self._available:
            self._checked_out.discard(session)
            self._stats["sessions_destroyed"] += 1
            self._available.notify_all()

    @contextmanager
    def session(self, timeout: float | None = None) -> Generator[Session, None, None]:
        """Context manager for a checked-out session.

        An invalid session is destroyed on exit. The resulting
        InvalidSessionReturnError only propagates when the block itself
        completed without an error.
        """
        session = self.acquire(timeout=timeout)
        try:
            yield session
        except BaseException:
            try:
                self.release(session)
            except InvalidSessionReturnError as e:
                logger.debug(f"{e}")
            raise
        self.release(session)

    @contextmanager
    def connection(self, timeout: float | None = None) -> Generator[SmbFileSystemConnection, None, None]:
        """Context manager yielding a filesystem connection over a pooled session."""
        with self.session(timeout=timeout) as session:
            yield SmbFileSystemConnection(session, self.lock_factory, self.manager)

    def shutdown(self, timeout: float | None = None) -> None:
        """Stop handing out sessions, drain checked-out ones, close idle ones.

        Args:
            timeout: Seconds to wait for checked-out sessions (None waits forever)
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._available:
            self._closed = True
            self._available.notify_all()
            while self._checked_out or self._pending:
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    logger.warning(
                        f"Shutting down with {len(self._checked_out)} session(s) still checked out"
                    )
                    break
                self._available.wait(remaining)
            idle = list(self._idle)
            self._idle.clear()

        for session in idle:
            self.manager.disconnect(session)
        logger.debug(f"Session pool shut down ({len(idle)} idle session(s) closed)")

    def get_stats(self) -> dict[str, Any]:
        """Get pool statistics.

        Example:
            >>> stats = pool.get_stats()
            >>> print(stats["reuse_ratio"])
        """
        with self._lock:
            created = self._stats["sessions_created"]
            reused = self._stats["sessions_reused"]
            total = created + reused
            return {
                "max_sessions": self._config.max_sessions,
                "active_sessions": len(self._checked_out),
                "idle_sessions": len(self._idle),
                "sessions_created": created,
                "sessions_reused": reused,
                "sessions_destroyed": self._stats["sessions_destroyed"],
                "reuse_ratio": reused / total if total > 0 else 0.0,
                "closed": self._closed,
            }


__all__ = ["PoolConfig", "SessionPool"]
