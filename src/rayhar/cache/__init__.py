"""Cache layer for the Rayhar dashboard.

Provides two-tier caching with the cache-aside pattern:
- DurableStore: persistent entries shared across sessions (localStorage tier)
- EphemeralStore: entries bound to one login session (sessionStorage tier)
- PatternInvalidator: namespace and substring invalidation across both tiers
- Janitor: periodic and lifecycle-driven removal of expired entries
- CacheAside: read-through wrapper for arbitrary async fetchers
- CacheWarmer: concurrent pre-population of a key catalog

The wiring of all of these lives in ``rayhar.cache.runtime.CacheRuntime``.
"""

from rayhar.cache.aside import CacheAside, fetch_with_timeout
from rayhar.cache.entry import CacheEntry, CacheWriteOutcome, DropReason, SweepReport
from rayhar.cache.errors import CacheError, CorruptEntryError, StorageError, StorageQuotaExceeded
from rayhar.cache.invalidation import InvalidationDomain, PatternInvalidator
from rayhar.cache.janitor import Janitor
from rayhar.cache.keys import CacheKeys
from rayhar.cache.lifecycle import LifecycleSource, ManualLifecycleSource
from rayhar.cache.storage import KeyValueStorage, MemoryStorage, RedisStorage
from rayhar.cache.stores import CacheStore, DurableStore, EphemeralStore
from rayhar.cache.warmer import CacheWarmer, WarmOutcome, WarmPolicy, WarmReport, WarmTask

__all__ = [
    # Keys and entries
    "CacheKeys",
    "CacheEntry",
    "CacheWriteOutcome",
    "DropReason",
    "SweepReport",
    # Errors
    "CacheError",
    "CorruptEntryError",
    "StorageError",
    "StorageQuotaExceeded",
    # Storage and stores
    "KeyValueStorage",
    "MemoryStorage",
    "RedisStorage",
    "CacheStore",
    "DurableStore",
    "EphemeralStore",
    # Invalidation and upkeep
    "InvalidationDomain",
    "PatternInvalidator",
    "Janitor",
    "LifecycleSource",
    "ManualLifecycleSource",
    # Read paths
    "CacheAside",
    "fetch_with_timeout",
    "CacheWarmer",
    "WarmOutcome",
    "WarmPolicy",
    "WarmReport",
    "WarmTask",
]
