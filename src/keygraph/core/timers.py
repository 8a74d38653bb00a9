"""
Cancellable one-shot timers.

A thin handle over :class:`threading.Timer` so debounce and batch-flush
timers can be replaced on every event without leaking threads.
"""

import threading
from typing import Any, Callable, Optional


class CancellableTimer:
    """
    Replaceable one-shot timer.

    ``schedule`` cancels any pending call before arming a new one, so only
    the most recent schedule ever fires.
    """

    def __init__(self, delay: float, callback: Callable[[], Any], name: str = "keygraph-timer"):
        self.delay = delay
        self.callback = callback
        self.name = name
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def schedule(self, delay: Optional[float] = None) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            timer = threading.Timer(self.delay if delay is None else delay, self._fire)
            timer.name = self.name
            timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> bool:
        """Cancel the pending call. Returns True if one was pending."""
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
            return True

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _fire(self) -> None:
        with self._lock:
            if self._timer is None or threading.current_thread() is not self._timer:
                return
            self._timer = None
        self.callback()
