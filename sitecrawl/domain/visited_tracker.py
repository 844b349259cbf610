import threading
from typing import Iterable, Set


class VisitedTracker:
    """
    Tracks every normalized URL ever admitted to a crawler's queue.

    Shared by all workers and by seed admission, so the only mutating
    operation is `mark_if_new`, which checks and inserts under one lock.
    Entries are never evicted: forgetting a URL would allow it to be
    scheduled a second time.
    """

    def __init__(self, urls: Iterable[str] = ()):
        self._lock = threading.Lock()
        self._visited: Set[str] = set(urls)

    def mark_if_new(self, url: str) -> bool:
        """Mark `url` as visited. Returns True only for the first caller."""
        with self._lock:
            if url in self._visited:
                return False
            self._visited.add(url)
            return True

    def is_visited(self, url: str) -> bool:
        with self._lock:
            return url in self._visited

    def __len__(self) -> int:
        with self._lock:
            return len(self._visited)
