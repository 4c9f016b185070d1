"""Exceptions raised inside the cache layer.

None of these reach callers of the stores: storage failures become a dropped
``CacheWriteOutcome`` and corrupt entries read as misses. They exist so the
backends and the stores can tell each failure apart.
"""

from __future__ import annotations


class CacheError(Exception):
    """Base class for cache layer errors."""


class StorageError(CacheError):
    """The physical key-value storage rejected an operation."""


class StorageQuotaExceeded(StorageError):
    """The storage is full and refused a write."""

    def __init__(self, key: str, needed: int | None = None, quota: int | None = None):
        self.key = key
        self.needed = needed
        self.quota = quota
        if needed is not None and quota is not None:
            message = f"Quota exceeded writing {key}: needs {needed} bytes of {quota}"
        else:
            message = f"Quota exceeded writing {key}"
        super().__init__(message)


class CorruptEntryError(CacheError):
    """A stored value could not be decoded into a cache entry."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupt cache entry {key}: {reason}")
