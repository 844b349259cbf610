import threading
from typing import NamedTuple


class StatsSnapshot(NamedTuple):
    processed: int
    succeeded: int
    failed: int


class CrawlerStats:
    """Thread-safe crawl counters.

    Counters only ever grow and keep accumulating across crawls run by the
    same crawler. `processed` is bumped when a worker picks a URL off the
    queue, so at any instant processed >= succeeded + failed.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._processed = 0
        self._succeeded = 0
        self._failed = 0

    def increment_processed(self) -> None:
        with self._lock:
            self._processed += 1

    def increment_succeeded(self) -> None:
        with self._lock:
            self._succeeded += 1

    def increment_failed(self) -> None:
        with self._lock:
            self._failed += 1

    @property
    def processed(self) -> int:
        with self._lock:
            return self._processed

    @property
    def succeeded(self) -> int:
        with self._lock:
            return self._succeeded

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    def snapshot(self) -> StatsSnapshot:
        """Read all three counters consistently."""
        with self._lock:
            return StatsSnapshot(self._processed, self._succeeded, self._failed)

    def __repr__(self):
        s = self.snapshot()
        return f"<CrawlerStats processed={s.processed} succeeded={s.succeeded} failed={s.failed}>"
