"""Periodic scheduling for the directory listener.

A scheduler repeatedly calls a tick function. The tick returns the number of
seconds to wait before the next call, so the listener can slow down while
the share is unavailable.
"""

import logging
import threading
from collections.abc import Callable
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Tick = Callable[[], float]


@runtime_checkable
class Scheduler(Protocol):
    """Runs a tick function periodically on its own execution context."""

    @property
    def running(self) -> bool: ...

    def start(self, tick: Tick, initial_delay: float = 0.0) -> None: ...

    def stop(self, timeout: float | None = None) -> None:
        """Cancel future ticks; an in-flight tick completes."""
        ...


class ThreadScheduler:
    """Scheduler backed by one daemon thread.

    Example:
        >>> scheduler = ThreadScheduler(name="listener")
        >>> scheduler.start(lambda: 1.0)
        >>> scheduler.stop()
    """

    def __init__(self, name: str = "SmbListener"):
        self.name = name
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self, tick: Tick, initial_delay: float = 0.0) -> None:
        """Start calling ``tick`` in a background thread."""
        if self.running:
            logger.warning(f"Scheduler {self.name} already running")
            return

        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._loop, args=(tick, initial_delay, self._stop_event), daemon=True, name=self.name
        )
        self._thread.start()
        logger.debug(f"Scheduler {self.name} started")

    def stop(self, timeout: float | None = None) -> None:
        """Stop the loop and wait for an in-flight tick to finish.

        Args:
            timeout: Seconds to wait for the thread (None waits until done)
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning(f"Scheduler {self.name} did not stop within {timeout} seconds")
        logger.debug(f"Scheduler {self.name} stopped")

    def _loop(self, tick: Tick, delay: float, stop_event: threading.Event) -> None:
        # Event.wait returns early when stop() is called
        while not stop_event.wait(delay):
            try:
                delay = tick()
            except Exception as e:
                logger.error(f"Scheduler {self.name} tick failed: {e}", exc_info=True)


__all__ = ["Scheduler", "ThreadScheduler", "Tick"]
