"""Background loops that run alongside crawler workers."""
import logging
import threading
from typing import Callable, Optional

from sitecrawl.domain.crawler_stats import CrawlerStats
from sitecrawl.services.cancellation import CancelScope

logger = logging.getLogger(__name__)


class IdleMonitor:
    """Cancel the crawl once no worker is busy and the queue is empty.

    Polls every `interval` seconds, so a crawl may run up to one interval
    past the moment work actually ran out.
    """

    def __init__(self, scope: CancelScope, is_idle: Callable[[], bool], *, interval: float = 1.0, log: Optional[logging.Logger] = None):
        self._scope = scope
        self._is_idle = is_idle
        self._interval = interval
        self._logger = log or logger
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="crawl-idle-monitor", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._scope.wait(self._interval):
            if self._is_idle():
                self._logger.info("No more work available, stopping crawler")
                self._scope.cancel()
                return

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)


class ProgressReporter:
    """Log crawl counters every `interval` seconds until the crawl ends."""

    def __init__(self, scope: CancelScope, stats: CrawlerStats, *, interval: float, log: Optional[logging.Logger] = None):
        self._scope = scope
        self._stats = stats
        self._interval = interval
        self._logger = log or logger
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="crawl-progress", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._scope.wait(self._interval):
            snap = self._stats.snapshot()
            self._logger.info(
                "Crawl progress: processed=%s succeeded=%s failed=%s",
                snap.processed,
                snap.succeeded,
                snap.failed,
            )

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)
