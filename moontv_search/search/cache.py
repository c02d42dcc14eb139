"""
Cache layer for ranked search results.

Design:
  - In-memory dict keyed by normalized query
  - TTL-based expiration (5 minutes); expired entries are a miss and are
    removed by the next sweep
  - Capacity cap (50); the oldest-created entries are evicted first
  - Thread-safe with a single lock
  - Optional persistence into an opaque key-value storage; corrupted
    payloads load as an empty cache, storage failures degrade to
    memory-only

Usage:
    cache = ResultCache(ttl=300, max_items=50)
    cache.start_sweeper()

    cache.set("流浪地球", results)
    cached = cache.get("流浪地球")

    stats = cache.stats()
    cache.stop_sweeper()
"""

import re
import json
import time
import logging
import threading
from collections.abc import MutableMapping
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..errors import CacheCorrupted, StorageUnavailable
from ..models import CacheEntry, SearchResult
from ..storage import MemoryStorage

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r'\s+')
_KEY_JUNK = re.compile(r'[^\w\-]')


def _dumps(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, default=str)


class ResultCache:
    """Thread-safe TTL cache for ranked search results."""

    STORAGE_KEY = 'moontv_search_cache_v1'

    def __init__(
        self,
        ttl: float = 300,
        max_items: int = 50,
        sweep_interval: float = 60,
        storage=None,
        clock: Optional[Callable[[], float]] = None
    ):
        """
        Initialize cache.

        Args:
            ttl: Time-to-live in seconds (default: 5 minutes)
            max_items: Maximum cache entries (default: 50)
            sweep_interval: Seconds between background sweeps (default: 60)
            storage: Optional key-value store with get/set/delete, or a
                plain dict, to persist entries into
            clock: Time source in epoch seconds (default: time.time)
        """
        self.ttl = ttl
        self.max_items = max_items
        self.sweep_interval = sweep_interval
        self._clock = clock or time.time
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

        self._sweeper: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

        if isinstance(storage, MutableMapping):
            storage = MemoryStorage(storage)
        self._storage = storage

        self._load()

    # =========================================================================
    # KEYS & VALIDITY
    # =========================================================================

    @staticmethod
    def make_key(query: str) -> str:
        """
        Normalize a query into a cache key.

        "  Wandering  Earth " -> "wandering_earth"
        "流浪地球 2!"         -> "流浪地球_2"
        """
        key = _WHITESPACE.sub('_', (query or "").strip().lower())
        return _KEY_JUNK.sub('', key)

    def _is_valid(self, entry: CacheEntry, now: Optional[float] = None) -> bool:
        if now is None:
            now = self._clock()
        return now - entry.created_at < self.ttl

    @staticmethod
    def _entry_size(entry: CacheEntry) -> int:
        """UTF-8 length of the entry's JSON encoding (without size_bytes)."""
        payload = entry.to_dict()
        payload.pop('size_bytes', None)
        try:
            return len(_dumps(payload).encode('utf-8'))
        except ValueError as e:
            logger.debug(f"Could not size cache entry for '{entry.query}': {e}")
            return 0

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get(self, query: str) -> Optional[List[SearchResult]]:
        """
        Get cached results if not expired.

        Returns:
            Copy of the cached list, or None if missing/expired
        """
        key = self.make_key(query)
        if not key:
            return None

        with self._lock:
            entry = self._entries.get(key)
            if entry is None or not self._is_valid(entry):
                self._misses += 1
                return None

            self._hits += 1
            logger.debug(f"Cache HIT: '{query}' ({len(entry.results)} results)")
            return list(entry.results)

    def set(self, query: str, results: Sequence[SearchResult]) -> None:
        """
        Cache results for a query.

        Queries that normalize to an empty key are not cached.
        """
        key = self.make_key(query)
        if not key:
            logger.debug(f"Not caching query with empty key: {query!r}")
            return

        entry = CacheEntry(
            query=query.strip(),
            results=list(results),
            created_at=self._clock(),
        )
        entry.size_bytes = self._entry_size(entry)

        with self._lock:
            # Re-inserting moves the key to the end of creation order
            self._entries.pop(key, None)
            self._entries[key] = entry
            self._evict_overflow()
            self._persist()

        logger.debug(f"Cache SET: '{query}' ({len(entry.results)} results, {entry.size_bytes} bytes)")

    def clear(self) -> None:
        """Clear all cache entries, the persisted payload and statistics."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            if self._storage is not None:
                try:
                    self._storage.delete(self.STORAGE_KEY)
                except Exception as e:
                    self._degrade(e)
        logger.info(f"Search cache cleared: {count} entries removed")

    def stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with cache metrics:
                - count: Current number of entries
                - total_size_bytes: Sum of entry sizes
                - keys: Sorted original queries
                - hits / misses / hit_rate
        """
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = (self._hits / total_requests * 100) if total_requests > 0 else 0.0

            return {
                'count': len(self._entries),
                'total_size_bytes': sum(e.size_bytes for e in self._entries.values()),
                'keys': sorted(e.query for e in self._entries.values()),
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': round(hit_rate, 2),
            }

    def warm(self, query: str, producer: Callable[[str], Sequence[SearchResult]]) -> Optional[List[SearchResult]]:
        """
        Fill the cache for `query` unless it's already cached.

        Producer errors are logged and swallowed.
        """
        cached = self.get(query)
        if cached is not None:
            return cached

        try:
            results = list(producer(query))
        except Exception as e:
            logger.warning(f"Cache warm failed for '{query}': {e}")
            return None

        self.set(query, results)
        return results

    # =========================================================================
    # EVICTION
    # =========================================================================

    def sweep(self) -> int:
        """
        Remove expired entries, then enforce the capacity cap.

        Idempotent. Returns the number of entries removed.
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if not self._is_valid(e, now)]
            for key in expired:
                del self._entries[key]

            removed = len(expired) + self._evict_overflow()
            if removed:
                self._persist()

        if removed:
            logger.info(f"Search cache sweep: {removed} entries removed")
        return removed

    def _evict_overflow(self) -> int:
        evicted = 0
        while len(self._entries) > self.max_items:
            oldest = min(self._entries, key=lambda k: self._entries[k].created_at)
            del self._entries[oldest]
            evicted += 1
        return evicted

    def start_sweeper(self) -> None:
        """Start the background sweep thread (no-op if already running)."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return

        self._stop_event.clear()

        def worker():
            while not self._stop_event.wait(self.sweep_interval):
                try:
                    self.sweep()
                except Exception as e:
                    logger.error(f"Search cache sweep failed: {e}")

        self._sweeper = threading.Thread(target=worker, name="search-cache-sweeper", daemon=True)
        self._sweeper.start()

    def stop_sweeper(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._sweeper is not None:
            self._sweeper.join(timeout)
            self._sweeper = None

    def __enter__(self) -> "ResultCache":
        self.start_sweeper()
        return self

    def __exit__(self, *exc) -> None:
        self.stop_sweeper()

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _load(self) -> None:
        if self._storage is None:
            return

        try:
            payload = self._storage.get(self.STORAGE_KEY)
        except Exception as e:
            self._degrade(e)
            return

        if not payload:
            return

        try:
            entries = self.decode(payload)
        except CacheCorrupted as e:
            logger.warning(f"Ignoring corrupted search cache payload: {e}")
            return

        now = self._clock()
        with self._lock:
            for key, entry in entries.items():
                if self._is_valid(entry, now):
                    self._entries[key] = entry
            self._evict_overflow()

        logger.info(f"Loaded {len(self._entries)} search cache entries")

    def _persist(self) -> None:
        if self._storage is None:
            return
        try:
            payload = self.encode(self._entries)
        except ValueError as e:
            # Circular references in extras; the storage itself is fine
            logger.warning(f"Search cache not persisted, payload could not be encoded: {e}")
            return

        try:
            self._storage.set(self.STORAGE_KEY, payload)
        except Exception as e:
            self._degrade(e)

    def _degrade(self, error: Exception) -> None:
        if not isinstance(error, StorageUnavailable):
            error = StorageUnavailable(str(error))
        logger.warning(f"Search cache storage unavailable, continuing in memory only: {error}")
        self._storage = None

    @staticmethod
    def encode(entries: Dict[str, CacheEntry]) -> str:
        """
        Serialize entries for storage.

        Values JSON can't represent natively (datetime, Decimal, ...) in
        `SearchResult.extra` are stored as their str().
        """
        return _dumps({k: e.to_dict() for k, e in entries.items()})

    @staticmethod
    def decode(payload: str) -> Dict[str, CacheEntry]:
        """
        Parse a persisted payload.

        Raises:
            CacheCorrupted: Payload is not valid JSON or has the wrong shape
        """
        try:
            data = json.loads(payload)
            if not isinstance(data, dict):
                raise TypeError(f"expected object, got {type(data).__name__}")
            entries = {str(k): CacheEntry.from_dict(v) for k, v in data.items()}
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise CacheCorrupted(str(e)) from e

        # Creation order drives eviction, so keep entries sorted by it
        return dict(sorted(entries.items(), key=lambda kv: kv[1].created_at))
