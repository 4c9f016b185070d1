"""Durable and ephemeral cache stores.

Both stores wrap a ``KeyValueStorage`` with the entry envelope, TTL expiry and
eviction on access:

- ``DurableStore``: the localStorage tier. Shared, persistent, default TTL of
  ten minutes.
- ``EphemeralStore``: the sessionStorage tier. Default TTL of a day, and every
  entry is bound to the session id that wrote it.

Reads never raise: corrupt, expired or foreign-session entries are removed and
reported as absent. Writes never raise either; they return a
``CacheWriteOutcome`` and, when storage is full, run an emergency sweep of
expired entries before dropping the write.
"""

from __future__ import annotations

import logging
from typing import Any

from rayhar.cache.clock import Clock, SystemClock
from rayhar.cache.entry import CacheEntry, CacheWriteOutcome, DropReason, SweepReport
from rayhar.cache.errors import CorruptEntryError, StorageError, StorageQuotaExceeded
from rayhar.cache.index import KeyIndex
from rayhar.cache.keys import CacheKeys
from rayhar.cache.session import SessionIdentity
from rayhar.cache.storage import KeyValueStorage
from rayhar.observability.metrics import CacheMetrics

logger = logging.getLogger(__name__)


class CacheStore:
    """TTL-aware entry store over a key-value storage."""

    tier = "cache"

    def __init__(
        self,
        storage: KeyValueStorage,
        default_ttl_ms: int,
        clock: Clock | None = None,
        metrics: CacheMetrics | None = None,
    ) -> None:
        self.storage = storage
        self.default_ttl_ms = default_ttl_ms
        self.clock = clock or SystemClock()
        self.metrics = metrics or CacheMetrics(enabled=False)
        self.index = KeyIndex()

    # -------------------------------------------------------------------------
    # Hooks for subclasses
    # -------------------------------------------------------------------------

    def _stamp(self, key: str, payload: Any, ttl_ms: int) -> CacheEntry:
        return CacheEntry(key=key, payload=payload, written_at=self.clock.now_ms(), ttl_ms=ttl_ms)

    def _rejection(self, entry: CacheEntry, now_ms: int) -> str | None:
        """Return the eviction cause if the entry must not be served."""
        if entry.is_expired(now_ms):
            return "expired"
        return None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def write(self, key: str, payload: Any, ttl_ms: int | None = None) -> CacheWriteOutcome:
        """Store ``payload`` under ``key``, overwriting any previous entry."""
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        entry = self._stamp(key, payload, ttl)

        try:
            raw = entry.to_bytes().decode()
        except TypeError as e:
            logger.error(f"Cannot serialize cache payload for {key}: {e}")
            return self._dropped(key, DropReason.SERIALIZATION, str(e))

        try:
            self.storage.set(key, raw)
        except StorageQuotaExceeded as e:
            logger.error(f"Cache storage full writing {key}: {e}")
            try:
                report = self.sweep()
            except StorageError as sweep_error:
                logger.error(f"Emergency {self.tier} cache sweep failed: {sweep_error}")
            else:
                logger.info(f"Emergency sweep freed {report.removed} {self.tier} entries")
            return self._dropped(key, DropReason.QUOTA_EXCEEDED, str(e))
        except StorageError as e:
            logger.error(f"Error saving to cache {key}: {e}")
            return self._dropped(key, DropReason.STORAGE_ERROR, str(e))

        self.index.add(key)
        self.metrics.record_write(self.tier)
        logger.debug(
            f"Cached {key} in {self.tier} store",
            extra={"size_kb": round(len(raw) / 1024, 2), "ttl_s": ttl / 1000},
        )
        return CacheWriteOutcome.stored(key)

    def lookup(self, key: str) -> CacheEntry | None:
        """Return the valid entry for ``key``, or None.

        Invalid entries found on the way are removed.
        """
        try:
            raw = self.storage.get(key)
        except StorageError as e:
            logger.error(f"Error reading from cache {key}: {e}")
            self.metrics.record_miss(self.tier)
            return None

        if raw is None:
            self.index.discard(key)
            self.metrics.record_miss(self.tier)
            return None

        try:
            entry = CacheEntry.from_bytes(key, raw)
        except CorruptEntryError as e:
            logger.warning(f"Removing corrupted cache entry: {e}")
            self._evict(key, "corrupt")
            self.metrics.record_miss(self.tier)
            return None

        now = self.clock.now_ms()
        cause = self._rejection(entry, now)
        if cause is not None:
            logger.debug(f"Cache {cause}: {key}")
            self._evict(key, cause)
            self.metrics.record_miss(self.tier)
            return None

        self.index.add(key)
        self.metrics.record_hit(self.tier)
        logger.debug(f"Cache hit: {key} ({entry.remaining_ms(now) // 1000}s left)")
        return entry

    def read(self, key: str) -> Any | None:
        """Return the cached payload for ``key``, or None when absent."""
        entry = self.lookup(key)
        return entry.payload if entry is not None else None

    def remove(self, key: str) -> None:
        """Delete ``key``. Missing keys are ignored."""
        try:
            self.storage.remove(key)
        except StorageError as e:
            logger.error(f"Error removing cache entry {key}: {e}")
            return
        self.index.discard(key)

    def keys(self) -> list[str]:
        """Managed keys currently present in storage."""
        return [key for key in self.storage.keys() if CacheKeys.is_managed(key)]

    def entries(self) -> list[tuple[str, CacheEntry | None]]:
        """Decode every managed key; None marks an unparseable value."""
        decoded: list[tuple[str, CacheEntry | None]] = []
        for key in self.keys():
            raw = self.storage.get(key)
            if raw is None:
                continue
            try:
                decoded.append((key, CacheEntry.from_bytes(key, raw)))
            except CorruptEntryError:
                decoded.append((key, None))
        return decoded

    def sweep(self) -> SweepReport:
        """Remove expired and unparseable entries, then resync the index.

        Only entries proven expired (or undecodable) are removed; session
        mismatches are left to the read path.

        Raises:
            StorageError: if the storage cannot be enumerated
        """
        report = SweepReport()
        now = self.clock.now_ms()
        for key, entry in self.entries():
            report.scanned += 1
            if entry is None:
                self._evict(key, "corrupt")
                report.corrupt += 1
            elif entry.is_expired(now):
                self._evict(key, "expired")
                report.expired += 1

        self.index.rebuild(self.keys())
        if report.removed:
            logger.info(
                f"Cleared {report.removed} expired {self.tier} cache entries",
                extra={"expired": report.expired, "corrupt": report.corrupt},
            )
        return report

    def clear(self) -> int:
        """Remove every managed entry. Returns the number removed."""
        keys = self.keys()
        for key in keys:
            self.remove(key)
        self.metrics.record_eviction(self.tier, "cleared", len(keys))
        return len(keys)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _evict(self, key: str, cause: str) -> None:
        self.remove(key)
        self.metrics.record_eviction(self.tier, cause)

    def _dropped(self, key: str, reason: DropReason, detail: str) -> CacheWriteOutcome:
        self.metrics.record_dropped_write(self.tier, reason.value)
        return CacheWriteOutcome.drop(key, reason, detail)


class DurableStore(CacheStore):
    """Persistent tier shared by every session (localStorage)."""

    tier = "durable"


class EphemeralStore(CacheStore):
    """Session-scoped tier (sessionStorage).

    Entries remember the session id that wrote them and are discarded
    unread once the live session id differs.
    """

    tier = "ephemeral"

    def __init__(
        self,
        storage: KeyValueStorage,
        default_ttl_ms: int,
        session: SessionIdentity,
        clock: Clock | None = None,
        metrics: CacheMetrics | None = None,
    ) -> None:
        super().__init__(storage, default_ttl_ms, clock=clock, metrics=metrics)
        self.session = session

    def session_id(self) -> str:
        return self.session.current()

    def _stamp(self, key: str, payload: Any, ttl_ms: int) -> CacheEntry:
        return CacheEntry(
            key=key,
            payload=payload,
            written_at=self.clock.now_ms(),
            ttl_ms=ttl_ms,
            session_id=self.session_id(),
        )

    def _rejection(self, entry: CacheEntry, now_ms: int) -> str | None:
        if entry.session_id != self.session_id():
            return "session"
        return super()._rejection(entry, now_ms)
