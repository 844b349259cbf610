from __future__ import annotations

import threading
import time
from typing import Optional


class CancelScope:
    """Cancellation signal for one crawl.

    Set by `cancel()` or inherited from the caller's event (`parent`), so
    anything observing the scope also observes the caller cancelling.
    Exposes the `threading.Event` surface fetchers already use
    (`is_set`, `wait`, `set`).
    """

    def __init__(self, parent: Optional[threading.Event] = None):
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    # threading.Event compatibility
    set = cancel

    def is_set(self) -> bool:
        if self._event.is_set():
            return True
        if self._parent is not None and self._parent.is_set():
            # latch so later checks don't depend on the parent
            self._event.set()
            return True
        return False

    def wait(self, timeout: Optional[float] = None, *, poll_interval: float = 0.05) -> bool:
        """Block until cancelled or `timeout` elapses. Returns is_set()."""
        if self._parent is None:
            return self._event.wait(timeout)
        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.is_set():
            remaining = poll_interval
            if deadline is not None:
                remaining = min(poll_interval, deadline - time.monotonic())
                if remaining <= 0:
                    break
            self._event.wait(remaining)
        return self.is_set()
