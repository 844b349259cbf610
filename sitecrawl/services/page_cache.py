import threading
from collections import OrderedDict
from typing import Optional, Protocol

from sitecrawl.exceptions import CacheMissError


class PageCache(Protocol):
    """Key -> bytes store used to skip re-fetching known pages.

    The crawler keys pages by canonical URL (`normalize_url` with the
    trailing "/" removed), so `http://a.test/` is stored as `https://a.test`
    under default options. Pre-populate with the same form.

    `get` raises `CacheMissError` for absent keys; any other exception is a
    real failure. Implementations must be safe for concurrent use by
    crawler workers.
    """

    def get(self, key: str) -> Optional[bytes]: ...

    def set(self, key: str, value: Optional[bytes]) -> None: ...

    def delete(self, key: str) -> None: ...

    def close(self) -> None: ...


def is_cache_miss(exc: BaseException) -> bool:
    return isinstance(exc, CacheMissError)


class InMemoryPageCache:
    """
    Process-local page cache.

    - `max_entries` bounds the number of pages kept (LRU eviction). If it is
      None or <= 0 the cache is unbounded.
    - Values are stored as given, including empty and None values.
    """

    def __init__(self, *, max_entries: Optional[int] = None):
        self._max_entries = int(max_entries) if max_entries is not None else None
        if self._max_entries is not None and self._max_entries <= 0:
            self._max_entries = None
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Optional[bytes]]" = OrderedDict()

    def _evict_if_needed(self) -> None:
        if self._max_entries is None:
            return
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            if key not in self._entries:
                raise CacheMissError(key)
            # Refresh LRU order on hit
            self._entries.move_to_end(key)
            return self._entries[key]

    def set(self, key: str, value: Optional[bytes]) -> None:
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            self._evict_if_needed()

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def close(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
