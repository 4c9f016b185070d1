"""Physical key-value storage backends.

The stores talk to storage through the small synchronous ``KeyValueStorage``
protocol, the shape of the browser's Web Storage API: string keys, string
values, enumeration, and a capacity limit that can make ``set`` fail.

- ``MemoryStorage``: in-process dict with a byte quota. Used for the
  ephemeral (session-scoped) tier and for tests.
- ``RedisStorage``: redis-py client. Used for the durable tier when several
  processes should share cached data.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol, cast

import redis
from redis.exceptions import OutOfMemoryError, RedisError

from rayhar.cache.errors import StorageError, StorageQuotaExceeded

if TYPE_CHECKING:
    from redis import Redis

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Synchronous string key-value storage."""

    @property
    def name(self) -> str:
        """Backend name for logs and stats."""
        ...

    def get(self, key: str) -> str | None:
        """Get value. Returns None when the key is absent."""
        ...

    def set(self, key: str, value: str) -> None:
        """Set value.

        Raises:
            StorageQuotaExceeded: if the storage is full
            StorageError: on any other backend failure
        """
        ...

    def remove(self, key: str) -> None:
        """Delete key. No error if it is absent."""
        ...

    def keys(self) -> list[str]:
        """Enumerate stored keys."""
        ...


def _size(key: str, value: str) -> int:
    return len(key.encode()) + len(value.encode())


class MemoryStorage:
    """In-memory storage with a byte quota.

    Example:
        storage = MemoryStorage(quota_bytes=5 * 1024 * 1024)
    """

    def __init__(self, quota_bytes: int | None = None, name: str = "memory") -> None:
        self._name = name
        self.quota_bytes = quota_bytes
        self._data: dict[str, str] = {}
        self._used = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def used_bytes(self) -> int:
        return self._used

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        current = self._data.get(key)
        freed = _size(key, current) if current is not None else 0
        needed = self._used - freed + _size(key, value)
        if self.quota_bytes is not None and needed > self.quota_bytes:
            raise StorageQuotaExceeded(key, needed=needed, quota=self.quota_bytes)
        self._data[key] = value
        self._used = needed

    def remove(self, key: str) -> None:
        value = self._data.pop(key, None)
        if value is not None:
            self._used -= _size(key, value)

    def keys(self) -> list[str]:
        return list(self._data)


class RedisStorage:
    """Redis-backed storage.

    Only keys matching ``match`` are enumerated, so a shared Redis database
    is never scanned in full.
    """

    def __init__(self, client: Redis, match: str = "*") -> None:
        self.client = client
        self.match = match

    @property
    def name(self) -> str:
        return "redis"

    def get(self, key: str) -> str | None:
        try:
            value = self.client.get(key)
        except RedisError as e:
            raise StorageError(f"Redis GET {key} failed: {e}") from e
        if value is None:
            return None
        return value.decode() if isinstance(value, bytes) else cast(str, value)

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(key, value)
        except OutOfMemoryError as e:
            raise StorageQuotaExceeded(key) from e
        except RedisError as e:
            raise StorageError(f"Redis SET {key} failed: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self.client.delete(key)
        except RedisError as e:
            raise StorageError(f"Redis DEL {key} failed: {e}") from e

    def keys(self) -> list[str]:
        try:
            return [
                k.decode() if isinstance(k, bytes) else k
                for k in self.client.scan_iter(match=self.match)
            ]
        except RedisError as e:
            raise StorageError(f"Redis SCAN {self.match} failed: {e}") from e

    def ping(self) -> bool:
        """Check Redis connectivity."""
        try:
            return bool(self.client.ping())
        except RedisError:
            return False


def redis_storage_from_url(url: str, match: str = "*") -> RedisStorage:
    """Create a RedisStorage with a pooled client for ``url``."""
    client = redis.Redis.from_url(url, decode_responses=True)
    logger.info(f"Using Redis durable cache storage (match={match})")
    return RedisStorage(client, match=match)
