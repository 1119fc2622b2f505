"""Directory Listener - poll a share directory and deliver new files.

Philosophy:
- At-least-once: a file is watermarked only after it was handed to the
  consumer and its post-action ran
- Per-file isolation: one bad file never stalls the poll loop
- Outages are a state, not a crash: the listener backs off while the share
  is unreachable and resumes with its watermark intact

State machine:

    IDLE --tick--> POLLING --matches--> DISPATCHING --done--> IDLE
                      |                      |
                      +---session failure----+--> UNAVAILABLE --tick--> POLLING
    any --stop()--> STOPPED

Public API (the "studs"):
    ListenerState: Listener states
    DirectoryListener: poll() / start() / stop()
"""

import logging
import threading
from collections.abc import Callable
from enum import Enum

from smbconnector.config import ListenerConfig
from smbconnector.exceptions import (
    InvalidSessionReturnError,
    LockTimeoutError,
    OperationError,
    PoolExhaustedError,
    PostActionError,
    SmbConnectionError,
)
from smbconnector.filesystem import SmbFileSystemConnection
from smbconnector.listener.scheduler import Scheduler, ThreadScheduler
from smbconnector.listener.watermark import WatermarkStore
from smbconnector.matcher import FileMatcher
from smbconnector.models import FileAttributes, ListenerMessage, ProcessingOutcome
from smbconnector.post_action import PostActionExecutor
from smbconnector.session.pool import SessionPool

logger = logging.getLogger(__name__)

Consumer = Callable[[ListenerMessage], None]

UNAVAILABLE_ERRORS = (SmbConnectionError, InvalidSessionReturnError, PoolExhaustedError)


class ListenerState(str, Enum):
    """Directory listener states."""

    IDLE = "IDLE"
    POLLING = "POLLING"
    DISPATCHING = "DISPATCHING"
    UNAVAILABLE = "UNAVAILABLE"
    STOPPED = "STOPPED"


class DirectoryListener:
    """Poll a directory and hand every new matching file to a consumer.

    Example:
        >>> deliveries = queue.Queue()
        >>> listener = DirectoryListener(pool, ListenerConfig(directory="incoming"), deliveries.put)
        >>> listener.start()
        >>> message = deliveries.get(timeout=10)
        >>> listener.stop()
    """

    def __init__(
        self,
        pool: SessionPool,
        config: ListenerConfig,
        consumer: Consumer,
        scheduler: Scheduler | None = None,
        watermarks: WatermarkStore | None = None,
        post_action_executor: PostActionExecutor | None = None,
    ):
        """Initialize directory listener.

        Args:
            pool: Session pool providing filesystem connections
            config: Directory, matcher criteria, post-action and polling settings
            consumer: Called with each delivered file; raising marks the
                delivery as FAILURE
            scheduler: Periodic execution context (default: ThreadScheduler)
            watermarks: Store of delivered identities (default: empty store)
            post_action_executor: Applies post-actions (default: PostActionExecutor)

        Raises:
            ConfigurationError: Invalid matcher criteria or post-action settings
        """
        self.pool = pool
        self.config = config
        self.consumer = consumer
        self.scheduler = scheduler or ThreadScheduler(name=f"SmbListener[{config.directory}]")
        self.watermarks = watermarks if watermarks is not None else WatermarkStore()
        self.post_action_executor = post_action_executor or PostActionExecutor()
        self.matcher = FileMatcher(config.criteria)

        self._state = ListenerState.IDLE
        self._state_lock = threading.Lock()
        self._poll_lock = threading.Lock()
        self._stop_requested = False
        self._consecutive_failures = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> ListenerState:
        with self._state_lock:
            return self._state

    def _transition(self, state: ListenerState) -> None:
        with self._state_lock:
            if self._state == ListenerState.STOPPED:
                return
            if self._state != state:
                logger.debug(f"Listener on '{self.config.directory}': {self._state.value} -> {state.value}")
            self._state = state

    def next_delay(self) -> float:
        """Seconds until the next poll: the polling frequency, or a bounded
        exponential backoff while the share is unavailable."""
        if self._consecutive_failures == 0:
            return self.config.polling_frequency
        delay = self.config.polling_frequency * (2 ** (self._consecutive_failures - 1))
        return min(delay, self.config.max_backoff)

    # ------------------------------------------------------------------
    # Poll cycle
    # ------------------------------------------------------------------

    def poll(self) -> int:
        """Run one poll cycle.

        Returns:
            Number of files delivered to the consumer
        """
        with self._poll_lock:
            if self.state == ListenerState.STOPPED:
                return 0

            self._transition(ListenerState.POLLING)
            delivered = 0
            try:
                with self.pool.connection() as fs:
                    delivered = self._poll_with(fs)
            except UNAVAILABLE_ERRORS as e:
                self._mark_unavailable(e)
                return delivered

            if self._consecutive_failures:
                logger.info(
                    f"Connection to share restored, listener on '{self.config.directory}' resumed"
                )
            self._consecutive_failures = 0
            self._transition(ListenerState.IDLE)
            return delivered

    def _poll_with(self, fs: SmbFileSystemConnection) -> int:
        try:
            entries = fs.list(self.config.directory, recursive=self.config.recursive)
        except OperationError as e:
            logger.warning(f"Could not list '{self.config.directory}': {e}")
            return 0

        candidates = [
            entry
            for entry in entries
            if not entry.is_directory
            and self.matcher.matches(entry)
            and entry.identity not in self.watermarks
        ]
        if not candidates:
            return 0

        logger.debug(f"Found {len(candidates)} new file(s) in '{self.config.directory}'")
        self._transition(ListenerState.DISPATCHING)
        delivered = 0
        for attributes in candidates:
            if self._stop_requested:
                logger.debug("Stop requested, leaving remaining files for the next run")
                break
            if self._dispatch(fs, attributes):
                delivered += 1
        return delivered

    def _dispatch(self, fs: SmbFileSystemConnection, attributes: FileAttributes) -> bool:
        """Deliver one file: lock, read, consume, post-action, watermark.

        Session failures propagate; per-file failures are logged and the file
        is left for the next cycle.
        """
        path = attributes.path
        try:
            lock_paths = self.post_action_executor.lock_paths(fs, path, self.config.post_action)
            with fs.locks.lock_all(lock_paths):
                payload = fs.read(path)
                outcome = self._consume(ListenerMessage(attributes=attributes, payload=payload))
                try:
                    self.post_action_executor.apply(fs, path, outcome, self.config.post_action)
                except PostActionError as e:
                    logger.error(f"Post-action failed for {path}: {e}")
                self.watermarks.add(attributes.identity)
        except (OperationError, LockTimeoutError) as e:
            logger.warning(f"Skipping {path}: {e}")
            return False
        return True

    def _consume(self, message: ListenerMessage) -> ProcessingOutcome:
        try:
            self.consumer(message)
        except Exception as e:
            logger.error(f"Processing of {message.attributes.path} failed: {e}")
            return ProcessingOutcome.FAILURE
        return ProcessingOutcome.SUCCESS

    def _mark_unavailable(self, error: Exception) -> None:
        self._consecutive_failures += 1
        self._transition(ListenerState.UNAVAILABLE)
        if self._consecutive_failures == 1:
            logger.warning(f"Share unavailable, listener on '{self.config.directory}' will retry: {error}")
        else:
            logger.debug(
                f"Share still unavailable ({self._consecutive_failures} attempts), "
                f"next poll in {self.next_delay():.1f}s: {error}"
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _tick(self) -> float:
        self.poll()
        return self.next_delay()

    def start(self) -> None:
        """Start polling on the scheduler."""
        with self._state_lock:
            if self._state == ListenerState.STOPPED:
                self._state = ListenerState.IDLE
            self._stop_requested = False
        self.scheduler.start(self._tick)
        logger.info(
            f"Listening on '{self.config.directory}' every {self.config.polling_frequency}s"
        )

    def stop(self, timeout: float | None = None) -> None:
        """Cancel future polls and wait for an in-flight delivery to complete."""
        self._stop_requested = True
        self.scheduler.stop(timeout=timeout)
        with self._state_lock:
            self._state = ListenerState.STOPPED
        logger.info(f"Listener on '{self.config.directory}' stopped")

    @property
    def running(self) -> bool:
        return self.scheduler.running


__all__ = ["Consumer", "DirectoryListener", "ListenerState"]
