"""Tests for the durable and ephemeral stores."""

from unittest.mock import MagicMock

from rayhar.cache.entry import DropReason
from rayhar.cache.errors import StorageError, StorageQuotaExceeded
from rayhar.cache.keys import CacheKeys
from rayhar.cache.session import SessionIdentity
from rayhar.cache.storage import MemoryStorage
from rayhar.cache.stores import DurableStore, EphemeralStore
from rayhar.observability.metrics import CacheMetrics


class TestDurableStore:
    """Test TTL behaviour of the durable tier."""

    def test_write_then_read(self, durable: DurableStore) -> None:
        """A fresh entry reads back its payload."""
        key = CacheKeys.leads_all()
        assert durable.write(key, [{"id": 1}]).ok
        assert durable.read(key) == [{"id": 1}]

    def test_read_missing(self, durable: DurableStore) -> None:
        """A key never written reads as None."""
        assert durable.read(CacheKeys.leads_all()) is None

    def test_ttl_boundary(self, durable: DurableStore, clock) -> None:
        """Valid at written_at + ttl, absent one millisecond later."""
        key = CacheKeys.customers_all()
        durable.write(key, ["c"], ttl_ms=1000)

        clock.advance(1000)
        assert durable.read(key) == ["c"]

        clock.advance(1)
        assert durable.read(key) is None
        assert durable.storage.get(key) is None

    def test_default_ttl(self, durable: DurableStore, clock) -> None:
        """Without an explicit ttl the store default applies."""
        key = CacheKeys.umrah("seasons")
        durable.write(key, [1])
        clock.advance(600_000)
        assert durable.read(key) == [1]
        clock.advance(1)
        assert durable.read(key) is None

    def test_overwrite_resets_timestamp(self, durable: DurableStore, clock) -> None:
        """Writing again replaces the entry and its expiry."""
        key = CacheKeys.leads_all()
        durable.write(key, "old", ttl_ms=100)
        clock.advance(90)
        durable.write(key, "new", ttl_ms=100)
        clock.advance(90)
        assert durable.read(key) == "new"

    def test_cached_none_is_a_hit(self, durable: DurableStore) -> None:
        """A cached None is a present entry, not a miss."""
        key = CacheKeys.leads_all()
        durable.write(key, None)
        entry = durable.lookup(key)
        assert entry is not None
        assert entry.payload is None

    def test_corrupt_entry_removed_on_read(
        self, durable: DurableStore, durable_storage: MemoryStorage
    ) -> None:
        """Unparseable values read as absent and are removed."""
        key = CacheKeys.leads_all()
        durable_storage.set(key, "{not json")

        assert durable.read(key) is None
        assert key not in durable.keys()

    def test_corruption_recovery(
        self, durable: DurableStore, durable_storage: MemoryStorage
    ) -> None:
        """After reading a corrupt entry the store behaves as if it never existed."""
        key = CacheKeys.destinations()
        durable_storage.set(key, '{"data": 1}')

        assert durable.read(key) is None
        assert durable.keys() == []
        assert durable.write(key, ["Makkah"]).ok
        assert durable.read(key) == ["Makkah"]

    def test_keys_only_managed(
        self, durable: DurableStore, durable_storage: MemoryStorage
    ) -> None:
        """Foreign keys in the same storage are ignored."""
        durable_storage.set("theme", "dark")
        durable.write(CacheKeys.leads_all(), [])
        assert durable.keys() == [CacheKeys.leads_all()]

    def test_unserializable_payload_dropped(self, durable: DurableStore) -> None:
        """A payload that cannot be encoded is dropped, not raised."""
        outcome = durable.write(CacheKeys.leads_all(), {"when": object()})
        assert outcome.dropped
        assert outcome.reason == DropReason.SERIALIZATION
        assert durable.read(CacheKeys.leads_all()) is None

    def test_quota_exceeded_dropped_and_sweeps(self, clock) -> None:
        """A full storage drops the write after sweeping expired entries."""
        storage = MemoryStorage(quota_bytes=200)
        store = DurableStore(storage, 1000, clock=clock)
        stale = CacheKeys.build("old", "x")
        store.write(stale, "a" * 50, ttl_ms=10)
        clock.advance(11)

        outcome = store.write(CacheKeys.leads_all(), "b" * 300)

        assert outcome.dropped
        assert outcome.reason == DropReason.QUOTA_EXCEEDED
        assert storage.get(stale) is None
        assert store.read(CacheKeys.leads_all()) is None

    def test_storage_error_on_write(self, clock) -> None:
        """Backend failures drop the write."""
        storage = MagicMock()
        storage.set.side_effect = StorageError("boom")
        store = DurableStore(storage, 1000, clock=clock)

        outcome = store.write(CacheKeys.leads_all(), [])
        assert outcome.reason == DropReason.STORAGE_ERROR

    def test_quota_exceeded_when_sweep_cannot_list(self, clock) -> None:
        """A full storage that also fails to enumerate still returns a dropped outcome."""
        storage = MagicMock()
        storage.set.side_effect = StorageQuotaExceeded(CacheKeys.leads_all())
        storage.keys.side_effect = StorageError("SCAN failed")
        store = DurableStore(storage, 1000, clock=clock)

        outcome = store.write(CacheKeys.leads_all(), [1])

        assert outcome.dropped
        assert outcome.reason == DropReason.QUOTA_EXCEEDED

    def test_storage_error_on_read_is_miss(self, clock) -> None:
        """Backend failures on read look like a miss."""
        storage = MagicMock()
        storage.get.side_effect = StorageError("boom")
        store = DurableStore(storage, 1000, clock=clock)
        assert store.read(CacheKeys.leads_all()) is None

    def test_sweep_removes_expired_and_corrupt_only(
        self, durable: DurableStore, durable_storage: MemoryStorage, clock
    ) -> None:
        """Sweep removes what it can prove invalid and keeps the rest."""
        durable.write(CacheKeys.build("a", "short"), 1, ttl_ms=10)
        durable.write(CacheKeys.build("a", "long"), 2, ttl_ms=10_000)
        durable_storage.set(CacheKeys.build("a", "bad"), "garbage")
        durable_storage.set("unrelated", "garbage")
        clock.advance(100)

        report = durable.sweep()

        assert report.scanned == 3
        assert report.expired == 1
        assert report.corrupt == 1
        assert durable.keys() == [CacheKeys.build("a", "long")]
        assert durable_storage.get("unrelated") == "garbage"

    def test_sweep_rebuilds_index(
        self, durable: DurableStore, durable_storage: MemoryStorage, clock
    ) -> None:
        """Entries written behind the store's back are indexed by a sweep."""
        other = DurableStore(durable_storage, 1000, clock=clock)
        other.write(CacheKeys.leads_all(), [])
        assert CacheKeys.leads_all() not in durable.index

        durable.sweep()
        assert CacheKeys.leads_all() in durable.index

    def test_clear(self, durable: DurableStore, durable_storage: MemoryStorage) -> None:
        """Clear removes every managed key and nothing else."""
        durable_storage.set("theme", "dark")
        durable.write(CacheKeys.leads_all(), [])
        durable.write(CacheKeys.customers_all(), [])

        assert durable.clear() == 2
        assert durable.keys() == []
        assert len(durable.index) == 0
        assert durable_storage.get("theme") == "dark"

    def test_metrics_recorded(self, durable: DurableStore, metrics: CacheMetrics) -> None:
        """Hits, misses and writes are counted per tier."""
        key = CacheKeys.leads_all()
        durable.read(key)
        durable.write(key, [])
        durable.read(key)

        labels = {"tier": "durable"}
        assert metrics.sample("rayhar_cache_misses_total", labels) == 1
        assert metrics.sample("rayhar_cache_writes_total", labels) == 1
        assert metrics.sample("rayhar_cache_hits_total", labels) == 1


class TestEphemeralStore:
    """Test session scoping of the ephemeral tier."""

    def test_entry_stamped_with_session(
        self, ephemeral: EphemeralStore, session: SessionIdentity
    ) -> None:
        """Written entries carry the live session id."""
        key = CacheKeys.dashboard_stats()
        ephemeral.write(key, {"stats": {}})
        entry = ephemeral.lookup(key)
        assert entry is not None
        assert entry.session_id == session.current() == "sess-1"

    def test_session_rotation_invalidates(
        self,
        ephemeral: EphemeralStore,
        ephemeral_storage: MemoryStorage,
        session: SessionIdentity,
        metrics: CacheMetrics,
    ) -> None:
        """Entries of a previous session read as absent and are removed."""
        key = CacheKeys.top_sales("umrah", 5)
        ephemeral.write(key, [{"id": 1}])

        session.rotate()

        assert ephemeral.read(key) is None
        assert ephemeral_storage.get(key) is None
        assert metrics.sample(
            "rayhar_cache_evictions_total", {"tier": "ephemeral", "cause": "session"}
        ) == 1

    def test_new_writes_after_rotation(
        self, ephemeral: EphemeralStore, session: SessionIdentity
    ) -> None:
        """Writes under the new session are readable."""
        key = CacheKeys.top_sales("umrah", 5)
        ephemeral.write(key, [1])
        session.rotate()
        ephemeral.write(key, [2])
        assert ephemeral.read(key) == [2]

    def test_session_survives_reload(
        self, ephemeral_storage: MemoryStorage, clock
    ) -> None:
        """A new session object over the same storage reuses the persisted id."""
        first = SessionIdentity(ephemeral_storage, "rayhar_session_id")
        store = EphemeralStore(ephemeral_storage, 1000, session=first, clock=clock)
        store.write(CacheKeys.dashboard_stats(), {"stats": 1})

        reloaded = SessionIdentity(ephemeral_storage, "rayhar_session_id")
        store2 = EphemeralStore(ephemeral_storage, 1000, session=reloaded, clock=clock)
        assert store2.read(CacheKeys.dashboard_stats()) == {"stats": 1}

    def test_session_key_is_not_managed(
        self, ephemeral: EphemeralStore, session: SessionIdentity
    ) -> None:
        """The persisted session id is invisible to enumeration and clear."""
        ephemeral.write(CacheKeys.dashboard_stats(), {})
        assert ephemeral.keys() == [CacheKeys.dashboard_stats()]
        ephemeral.clear()
        assert ephemeral.storage.get(session.key) == session.current()

    def test_sweep_keeps_foreign_session_entries(
        self, ephemeral: EphemeralStore, session: SessionIdentity
    ) -> None:
        """Sweep removes only expired entries; session mismatches wait for a read."""
        key = CacheKeys.dashboard_stats()
        ephemeral.write(key, {})
        session.rotate()

        report = ephemeral.sweep()

        assert report.removed == 0
        assert ephemeral.keys() == [key]
