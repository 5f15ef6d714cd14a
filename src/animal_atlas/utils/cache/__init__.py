"""Cache utilities for Animal Atlas.

This package provides the bounded expiring cache shared by every source
adapter and resolver.

Main components:
- Cache: TTL envelopes, size cap with oldest-first eviction, preserved keys
- Backends: in-memory, JSON file and Redis storage namespaces
- Decorator: @cached for adapter operations
"""

from animal_atlas.utils.cache.backends import (
    FileBackend,
    InMemoryBackend,
    RedisBackend,
    StorageBackend,
    StorageError,
    StorageQuotaExceededError,
    StorageUnavailableError,
)
from animal_atlas.utils.cache.cache import PRESERVED_KEYS, Cache, CacheStats
from animal_atlas.utils.cache.decorator import cached

__all__ = [
    "PRESERVED_KEYS",
    "Cache",
    "CacheStats",
    "FileBackend",
    "InMemoryBackend",
    "RedisBackend",
    "StorageBackend",
    "StorageError",
    "StorageQuotaExceededError",
    "StorageUnavailableError",
    "cached",
]
