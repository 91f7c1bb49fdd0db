"""
Order Cache

Shared, query-keyed cache for every view of order data (detail, list pages,
dashboard counters). Keys are tuples so a whole family can be invalidated by
prefix, e.g. ("orders", "list") covers every cached page.

Rules:
- a stale or expired entry is never served; reading it reloads it
- a load that was running when its key got invalidated is stored as stale,
  so data fetched before a transition can't be cached as fresh after it
- invalidation keeps (as stale, for refetch) only entries read within the
  TTL, and at most `keep` of them; the rest are dropped and load on next read
- the cache holds at most `max_entries`; the least recently read go first
"""
import itertools
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, List, Optional, Set, Tuple

from app.exceptions import TransportFailure
from app.logging_config import get_logger

logger = get_logger(__name__)

CacheKey = Tuple[Hashable, ...]
Loader = Callable[[], Any]

# Key families
ORDER_DETAILS: CacheKey = ("orders", "detail")
ORDER_LISTS: CacheKey = ("orders", "list")
DASHBOARD: CacheKey = ("dashboard",)
DASHBOARD_STATS: CacheKey = ("dashboard", "stats")


def order_detail_key(order_id: str) -> CacheKey:
    return ORDER_DETAILS + (order_id,)


def order_list_key(page: int, page_size: int, sort: Optional[str]) -> CacheKey:
    return ORDER_LISTS + (page, page_size, sort)


def _matches(key: CacheKey, prefix: CacheKey) -> bool:
    return key[: len(prefix)] == prefix


@dataclass
class _Entry:
    value: Any
    loader: Loader
    fetched_at: float
    read_at: float
    last_used: int
    stale: bool = False


class _Load:
    """Marker for a load in progress."""
    __slots__ = ("key", "dirty")

    def __init__(self, key: CacheKey):
        self.key = key
        self.dirty = False


class OrderCache:
    """Thread-safe invalidate-and-refetch cache."""

    def __init__(
        self,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
        max_entries: int = 256,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[CacheKey, _Entry] = {}
        self._loads: Set[_Load] = set()
        self._lock = threading.Lock()
        self._uses = itertools.count()

    def _is_fresh(self, entry: _Entry) -> bool:
        if entry.stale:
            return False
        return (self._clock() - entry.fetched_at) < self.ttl_seconds

    def _touch(self, entry: _Entry) -> None:
        entry.read_at = self._clock()
        entry.last_used = next(self._uses)

    def _evict(self) -> None:
        # caller holds the lock
        overflow = len(self._entries) - self.max_entries
        if overflow <= 0:
            return
        coldest = sorted(self._entries.items(), key=lambda item: item[1].last_used)[:overflow]
        for key, _ in coldest:
            del self._entries[key]

    def _load(self, key: CacheKey, loader: Loader) -> Any:
        token = _Load(key)
        with self._lock:
            self._loads.add(token)
        try:
            value = loader()
        finally:
            with self._lock:
                self._loads.discard(token)
        with self._lock:
            now = self._clock()
            previous = self._entries.get(key)
            self._entries[key] = _Entry(
                value=value,
                loader=loader,
                fetched_at=now,
                # a refetch is not a read
                read_at=previous.read_at if previous else now,
                last_used=previous.last_used if previous else next(self._uses),
                stale=token.dirty,
            )
            self._evict()
        return value

    def fetch(self, key: CacheKey, loader: Loader) -> Any:
        """Return the cached value for `key`, loading it if missing, stale or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry):
                self._touch(entry)
                return entry.value
        value = self._load(key, loader)
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._touch(entry)
        return value

    def peek(self, key: CacheKey) -> Optional[Any]:
        """Fresh cached value or None; never loads."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry):
                return entry.value
        return None

    def is_stale(self, key: CacheKey) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._is_fresh(entry)

    def invalidate(self, prefix: CacheKey, *, keep: Optional[int] = None) -> List[CacheKey]:
        """
        Invalidate every entry under `prefix`. Returns the affected keys.

        Entries read within the TTL are marked stale for `refetch_stale`,
        most recently read first, up to `keep` of them (all when None).
        Everything else under the prefix is dropped.
        """
        with self._lock:
            now = self._clock()
            matching = sorted(
                ((key, entry) for key, entry in self._entries.items() if _matches(key, prefix)),
                key=lambda item: item[1].last_used,
                reverse=True,
            )
            affected = []
            kept = 0
            for key, entry in matching:
                recently_read = (now - entry.read_at) < self.ttl_seconds
                if recently_read and (keep is None or kept < keep):
                    entry.stale = True
                    kept += 1
                else:
                    del self._entries[key]
                affected.append(key)
            for token in self._loads:
                if _matches(token.key, prefix):
                    token.dirty = True
        return affected

    def refetch_stale(self) -> List[CacheKey]:
        """
        Reload every stale entry with the loader that produced it.

        An entry whose reload fails stays stale and is reloaded on next read.
        Returns the keys that were refreshed.
        """
        with self._lock:
            pending = [(key, entry.loader) for key, entry in self._entries.items() if entry.stale]

        refreshed = []
        for key, loader in pending:
            try:
                self._load(key, loader)
            except TransportFailure as e:
                logger.warning(f"Refetch failed for {key}; entry left stale: {e.message}")
                continue
            refreshed.append(key)
        return refreshed

    def keys(self) -> List[CacheKey]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
