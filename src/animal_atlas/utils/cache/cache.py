"""Size-bounded, expiring cache over a flat storage namespace.

Every value is stored as a JSON envelope ``{"data": ..., "timestamp": ms,
"expiresIn": ms}``. Keys that do not hold such an envelope (user preferences,
favorites, the daily pointer) share the namespace and are never evicted.
"""

import json
import logging
import time
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import BaseModel, Field

from animal_atlas.utils.cache.backends import (
    StorageBackend,
    StorageError,
    StorageQuotaExceededError,
    item_size,
)

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024
MAX_CACHE_SIZE = 5 * MEGABYTE
RECLAIM_SIZE = 2 * MEGABYTE
QUOTA_RECLAIM_SIZE = 3 * MEGABYTE

THEME_KEY = "animal_atlas_theme"
FAVORITES_KEY = "animal_atlas_favorites"
VIEWS_KEY = "animal_views"
ACHIEVEMENTS_KEY = "achievement_data"
ACHIEVEMENT_VIEWS_KEY = "achievement_viewed_animals"
ANIMAL_OF_DAY_KEY = "animal_atlas_animal_of_day"
RECENT_SEARCHES_KEY = "animal_atlas_recent_searches"

PRESERVED_KEYS = frozenset(
    {
        THEME_KEY,
        FAVORITES_KEY,
        VIEWS_KEY,
        ACHIEVEMENTS_KEY,
        ACHIEVEMENT_VIEWS_KEY,
        ANIMAL_OF_DAY_KEY,
        RECENT_SEARCHES_KEY,
    }
)


def _now_ms() -> float:
    return time.time() * 1000


def format_age(age_ms: int) -> str:
    """Format an entry age as ``"Xd Yh"`` (or ``"Yh"`` under a day)."""
    hours = age_ms // (60 * 60 * 1000)
    days = hours // 24
    return f"{days}d {hours % 24}h" if days > 0 else f"{hours}h"


class OldestEntry(BaseModel):
    key: str
    age_ms: int
    age: str


class LargestEntry(BaseModel):
    key: str
    size_bytes: int


class CacheStats(BaseModel):
    """Snapshot of cache occupancy and activity."""

    entry_count: int
    total_bytes: int
    max_bytes: int
    percent_used: float
    oldest_entry: OldestEntry | None = None
    largest_entry: LargestEntry | None = None
    counters: dict[str, int] = Field(default_factory=dict)


def parse_entry(raw: str) -> dict[str, Any] | None:
    """Decode a stored envelope, or None when raw is not a cache entry.

    Args:
        raw: Stored string

    Returns:
        The decoded envelope when it carries numeric timestamp and expiresIn
    """
    try:
        entry = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(entry, dict):
        return None
    for field in ("timestamp", "expiresIn"):
        value = entry.get(field)
        if isinstance(value, bool) or not isinstance(value, int | float):
            return None
    return entry


class Cache:
    """Bounded expiring cache shared by every source adapter.

    Writes never raise: a failed write is logged and dropped. Reads treat
    absent, expired, corrupted and unavailable alike as a miss.
    """

    def __init__(
        self,
        backend: StorageBackend,
        max_size_bytes: int = MAX_CACHE_SIZE,
        reclaim_bytes: int = RECLAIM_SIZE,
        quota_reclaim_bytes: int = QUOTA_RECLAIM_SIZE,
        preserved_keys: Iterable[str] = PRESERVED_KEYS,
        clock: Callable[[], float] = _now_ms,
    ):
        """Initialize cache.

        Args:
            backend: Storage backend holding the namespace
            max_size_bytes: Soft cap checked before every write
            reclaim_bytes: Minimum bytes evicted when the cap would be exceeded
            quota_reclaim_bytes: Bytes evicted after the backend rejects a write
            preserved_keys: Keys never evicted or cleared
            clock: Returns the current time in epoch milliseconds
        """
        self._backend = backend
        self.max_size_bytes = max_size_bytes
        self.reclaim_bytes = reclaim_bytes
        self.quota_reclaim_bytes = quota_reclaim_bytes
        self.preserved_keys = frozenset(preserved_keys)
        self._clock = clock

        self._stats = {
            "hits": 0,
            "misses": 0,
            "sets": 0,
            "deletes": 0,
            "evictions": 0,
            "errors": 0,
        }

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def now(self) -> int:
        """Current time in epoch milliseconds, from the injected clock."""
        return int(self._clock())

    def get(self, key: str) -> Any:  # noqa: ANN401
        """Get a cached value.

        An expired entry is deleted as a side effect of the read.

        Args:
            key: Cache key

        Returns:
            The cached data, or None on a miss
        """
        try:
            raw = self._backend.get_item(key)
        except StorageError as e:
            self._stats["errors"] += 1
            logger.error("Cache get error", extra={"key": key, "error": str(e)})
            return None

        if raw is None:
            self._stats["misses"] += 1
            return None

        entry = parse_entry(raw)
        if entry is None:
            self._stats["misses"] += 1
            logger.debug("Ignoring corrupted cache entry", extra={"key": key})
            return None

        if self.now() - entry["timestamp"] > entry["expiresIn"]:
            self._stats["misses"] += 1
            self._remove(key)
            logger.debug("Cache entry expired", extra={"key": key})
            return None

        self._stats["hits"] += 1
        return entry.get("data")

    def set(self, key: str, value: Any, ttl_ms: int) -> bool:  # noqa: ANN401
        """Cache a JSON-serializable value.

        Args:
            key: Cache key
            value: Value to cache
            ttl_ms: Time-to-live in milliseconds

        Returns:
            True if the value was stored, False if it was dropped
        """
        try:
            serialized = json.dumps({"data": value, "timestamp": self.now(), "expiresIn": ttl_ms})
        except (TypeError, ValueError) as e:
            self._stats["errors"] += 1
            logger.warning("Cannot serialize cache value", extra={"key": key, "error": str(e)})
            return False

        size = item_size(key, serialized)
        try:
            current = self._backend.total_size()
            if current + size > self.max_size_bytes:
                target = max(self.reclaim_bytes, current + size - self.max_size_bytes)
                logger.info(
                    "Cache size limit reached, evicting old entries",
                    extra={"current_bytes": current, "item_bytes": size, "target": target},
                )
                self._evict_oldest(target)
            self._write(key, serialized)
        except StorageError as e:
            self._stats["errors"] += 1
            logger.error("Cache set error", extra={"key": key, "error": str(e)})
            return False

        self._stats["sets"] += 1
        return True

    def _write(self, key: str, serialized: str) -> None:
        try:
            self._backend.set_item(key, serialized)
        except StorageQuotaExceededError:
            logger.warning("Storage quota exceeded, evicting old entries and retrying")
            self._evict_oldest(self.quota_reclaim_bytes)
            self._backend.set_item(key, serialized)

    def delete(self, key: str) -> bool:
        """Delete a single key.

        Returns:
            True if successful, False otherwise
        """
        if self._remove(key):
            self._stats["deletes"] += 1
            return True
        return False

    def _remove(self, key: str) -> bool:
        try:
            self._backend.remove_item(key)
            return True
        except StorageError as e:
            self._stats["errors"] += 1
            logger.error("Cache delete error", extra={"key": key, "error": str(e)})
            return False

    def _cache_entries(self) -> list[tuple[str, dict[str, Any], int]]:
        """Every evictable cache entry as (key, envelope, size)."""
        entries = []
        for key, raw in self._backend.items():
            if key in self.preserved_keys:
                continue
            entry = parse_entry(raw)
            if entry is not None:
                entries.append((key, entry, item_size(key, raw)))
        return entries

    def _evict_oldest(self, target_bytes: int) -> int:
        """Evict cache entries oldest-first until target_bytes have been freed.

        Returns:
            Bytes actually freed
        """
        entries = sorted(self._cache_entries(), key=lambda item: item[1]["timestamp"])
        freed = 0
        evicted = 0
        for key, _entry, size in entries:
            if freed >= target_bytes:
                break
            self._backend.remove_item(key)
            freed += size
            evicted += 1

        self._stats["evictions"] += evicted
        logger.info("Evicted cache entries", extra={"count": evicted, "freed_bytes": freed})
        return freed

    def evict_by_prefix(self, prefix: str) -> int:
        """Remove every non-preserved key starting with prefix.

        Args:
            prefix: Key prefix, e.g. ``"images_"`` or ``"gbif_"``

        Returns:
            Number of keys removed
        """
        try:
            doomed = [
                key
                for key in self._backend.keys()
                if key.startswith(prefix) and key not in self.preserved_keys
            ]
            for key in doomed:
                self._backend.remove_item(key)
        except StorageError as e:
            self._stats["errors"] += 1
            logger.error("Cache prefix clear error", extra={"prefix": prefix, "error": str(e)})
            return 0

        self._stats["deletes"] += len(doomed)
        logger.info(
            "Cleared cache entries by prefix", extra={"prefix": prefix, "count": len(doomed)}
        )
        return len(doomed)

    def evict_all(self) -> int:
        """Remove every cache entry, keeping preserved keys and non-cache values.

        Returns:
            Number of entries removed
        """
        try:
            doomed = [key for key, _entry, _size in self._cache_entries()]
            for key in doomed:
                self._backend.remove_item(key)
        except StorageError as e:
            self._stats["errors"] += 1
            logger.error("Cache clear error", extra={"error": str(e)})
            return 0

        self._stats["deletes"] += len(doomed)
        logger.info("Cleared all cache entries", extra={"count": len(doomed)})
        return len(doomed)

    def get_raw(self, key: str) -> str | None:
        """Read a non-cache value (preferences, recent searches) from the namespace."""
        try:
            return self._backend.get_item(key)
        except StorageError as e:
            self._stats["errors"] += 1
            logger.error("Storage read error", extra={"key": key, "error": str(e)})
            return None

    def set_raw(self, key: str, value: str) -> bool:
        """Write a non-cache value, bypassing expiry and size accounting."""
        try:
            self._backend.set_item(key, value)
            return True
        except StorageError as e:
            self._stats["errors"] += 1
            logger.error("Storage write error", extra={"key": key, "error": str(e)})
            return False

    def total_size(self) -> int:
        """Total bytes stored in the namespace, cache entries or not."""
        try:
            return self._backend.total_size()
        except StorageError:
            return 0

    def stats(self) -> CacheStats:
        """Occupancy snapshot plus hit/miss counters."""
        try:
            entries = self._cache_entries()
            total = self._backend.total_size()
        except StorageError as e:
            logger.error("Cache stats error", extra={"error": str(e)})
            entries, total = [], 0

        oldest = None
        largest = None
        if entries:
            oldest_key, oldest_entry, _ = min(entries, key=lambda item: item[1]["timestamp"])
            age_ms = max(0, self.now() - int(oldest_entry["timestamp"]))
            oldest = OldestEntry(key=oldest_key, age_ms=age_ms, age=format_age(age_ms))
            largest_key, _, largest_size = max(entries, key=lambda item: item[2])
            largest = LargestEntry(key=largest_key, size_bytes=largest_size)

        return CacheStats(
            entry_count=len(entries),
            total_bytes=total,
            max_bytes=self.max_size_bytes,
            percent_used=round(total / self.max_size_bytes * 100, 2),
            oldest_entry=oldest,
            largest_entry=largest,
            counters=dict(self._stats),
        )

    def get_stats(self) -> dict[str, Any]:
        """Hit/miss counters with the computed hit rate."""
        total_requests = self._stats["hits"] + self._stats["misses"]
        hit_rate = (self._stats["hits"] / total_requests * 100) if total_requests else 0
        return {**self._stats, "hit_rate": round(hit_rate, 2)}

    def __repr__(self) -> str:
        """Return string representation of cache."""
        return (
            f"Cache(backend={type(self._backend).__name__}, "
            f"max_size_bytes={self.max_size_bytes}, "
            f"hits={self._stats['hits']}, misses={self._stats['misses']})"
        )
