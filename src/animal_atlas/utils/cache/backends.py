"""Storage backends for the bounded expiring cache.

A storage backend is a flat string key/value namespace with a byte quota, the
same contract a browser's persistent key/value store offers. Expiry and
eviction live in the Cache on top; backends only store strings.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

import redis

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base class for storage backend failures."""


class StorageQuotaExceededError(StorageError):
    """Raised when a write does not fit in the backend's quota."""


class StorageUnavailableError(StorageError):
    """Raised when the backend cannot be read or written at all."""


def item_size(key: str, value: str) -> int:
    """Bytes an item occupies, counting two bytes per character."""
    return (len(key) + len(value)) * 2


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    def get_item(self, key: str) -> str | None:
        """Get the raw value stored under key.

        Args:
            key: Storage key to retrieve

        Returns:
            Stored string or None if absent
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a raw value.

        Args:
            key: Storage key
            value: String value to store

        Raises:
            StorageQuotaExceededError: If the value does not fit
            StorageUnavailableError: If the store cannot be written
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error.

        Args:
            key: Storage key to remove
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """List every key currently stored.

        Returns:
            List of keys
        """
        pass

    def items(self) -> list[tuple[str, str]]:
        """List every (key, value) pair currently stored."""
        pairs = []
        for key in self.keys():
            value = self.get_item(key)
            if value is not None:
                pairs.append((key, value))
        return pairs

    def total_size(self) -> int:
        """Total bytes stored across all keys."""
        return sum(item_size(key, value) for key, value in self.items())


class InMemoryBackend(StorageBackend):
    """Process-local backend, optionally with a simulated quota."""

    def __init__(self, quota_bytes: int | None = None):
        """Initialize in-memory backend.

        Args:
            quota_bytes: Hard quota in bytes; None means unlimited
        """
        self.quota_bytes = quota_bytes
        self._store: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        """Get the raw value stored under key."""
        return self._store.get(key)

    def set_item(self, key: str, value: str) -> None:
        """Store a raw value, enforcing the quota."""
        if self.quota_bytes is not None:
            previous = self._store.get(key)
            current = self.total_size()
            if previous is not None:
                current -= item_size(key, previous)
            if current + item_size(key, value) > self.quota_bytes:
                raise StorageQuotaExceededError(
                    f"Writing '{key}' would exceed quota of {self.quota_bytes} bytes"
                )
        self._store[key] = value

    def remove_item(self, key: str) -> None:
        """Remove a key."""
        self._store.pop(key, None)

    def keys(self) -> list[str]:
        """List every key currently stored."""
        return list(self._store)

    def items(self) -> list[tuple[str, str]]:
        """List every (key, value) pair currently stored."""
        return list(self._store.items())


class FileBackend(StorageBackend):
    """Persistent backend storing the whole namespace as one JSON object.

    The file is loaded lazily on first access and rewritten atomically on every
    mutation. A corrupt or unreadable file is treated as an empty store.
    """

    def __init__(self, path: str | Path, quota_bytes: int | None = None):
        """Initialize file backend.

        Args:
            path: Location of the JSON file
            quota_bytes: Hard quota in bytes; None means unlimited
        """
        self.path = Path(path).expanduser()
        self.quota_bytes = quota_bytes
        self._store: dict[str, str] | None = None

    def _load(self) -> dict[str, str]:
        if self._store is not None:
            return self._store

        self._store = {}
        if self.path.exists():
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                if isinstance(raw, dict):
                    self._store = {str(k): v for k, v in raw.items() if isinstance(v, str)}
                else:
                    logger.warning("Ignoring cache file with unexpected layout: %s", self.path)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning("Ignoring unreadable cache file %s: %s", self.path, e)
        return self._store

    def _flush(self, store: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".cache-", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(store, handle)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot write cache file {self.path}: {e}") from e

    def get_item(self, key: str) -> str | None:
        """Get the raw value stored under key."""
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        """Store a raw value, enforcing the quota, and persist the namespace."""
        store = self._load()
        if self.quota_bytes is not None:
            current = sum(item_size(k, v) for k, v in store.items() if k != key)
            if current + item_size(key, value) > self.quota_bytes:
                raise StorageQuotaExceededError(
                    f"Writing '{key}' would exceed quota of {self.quota_bytes} bytes"
                )
        updated = {**store, key: value}
        self._flush(updated)
        self._store = updated

    def remove_item(self, key: str) -> None:
        """Remove a key and persist the namespace."""
        store = self._load()
        if key in store:
            updated = {k: v for k, v in store.items() if k != key}
            self._flush(updated)
            self._store = updated

    def keys(self) -> list[str]:
        """List every key currently stored."""
        return list(self._load())

    def items(self) -> list[tuple[str, str]]:
        """List every (key, value) pair currently stored."""
        return list(self._load().items())


class RedisBackend(StorageBackend):
    """Redis backend storing raw strings under a namespace prefix.

    Redis running with ``maxmemory`` and ``noeviction`` rejects writes with an
    OOM error; that rejection is surfaced as a quota error so the Cache can
    evict and retry.
    """

    def __init__(
        self,
        host: str = "127.0.0.1",
        port: int = 6379,
        db: int = 0,
        namespace: str = "animal_atlas:",
        timeout: float = 1.0,
        client: redis.Redis | None = None,
    ):
        """Initialize Redis backend.

        Args:
            host: Redis server host
            port: Redis server port
            db: Redis database number
            namespace: Prefix applied to every key
            timeout: Connection timeout in seconds
            client: Pre-built client (used instead of creating a pool)
        """
        self.namespace = namespace

        if client is not None:
            self.client = client
            return

        self.pool = redis.ConnectionPool(
            host=host,
            port=port,
            db=db,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
            decode_responses=True,
        )
        self.client = redis.Redis(connection_pool=self.pool)

        # An unreachable server is not fatal; each operation raises
        # StorageUnavailableError and the Cache reads that as a miss.
        try:
            self.client.ping()
            logger.debug(
                "Redis backend initialized successfully",
                extra={"host": host, "port": port, "db": db},
            )
        except redis.RedisError as e:
            logger.warning(
                "Redis unavailable, cache reads will miss",
                extra={"host": host, "port": port, "error": str(e)},
            )

    def _key(self, key: str) -> str:
        return f"{self.namespace}{key}"

    def get_item(self, key: str) -> str | None:
        """Get the raw value stored under key."""
        try:
            value = self.client.get(self._key(key))
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Redis get failed for '{key}': {e}") from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set_item(self, key: str, value: str) -> None:
        """Store a raw value."""
        try:
            self.client.set(self._key(key), value)
        except redis.ResponseError as e:
            if "OOM" in str(e):
                raise StorageQuotaExceededError(f"Redis is out of memory writing '{key}'") from e
            raise StorageUnavailableError(f"Redis set failed for '{key}': {e}") from e
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Redis set failed for '{key}': {e}") from e

    def remove_item(self, key: str) -> None:
        """Remove a key."""
        try:
            self.client.delete(self._key(key))
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Redis delete failed for '{key}': {e}") from e

    def keys(self) -> list[str]:
        """List every key in the namespace, using SCAN to avoid blocking the server."""
        prefix_length = len(self.namespace)
        try:
            found = []
            for raw_key in self.client.scan_iter(match=f"{self.namespace}*", count=100):
                key = raw_key.decode("utf-8") if isinstance(raw_key, bytes) else raw_key
                found.append(key[prefix_length:])
            return found
        except redis.RedisError as e:
            raise StorageUnavailableError(f"Redis scan failed: {e}") from e
