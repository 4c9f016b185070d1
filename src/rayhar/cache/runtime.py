"""Cache runtime wiring.

One ``CacheRuntime`` per application instance owns every cache component and
its lifecycle. It is created once at bootstrap and passed to whatever needs
the cache; there is no module-level singleton.

Example:
    runtime = CacheRuntime(
        fetchers=supabase_fetchers, identities=auth, record_fetchers=supabase_records
    )
    await runtime.init()
    runtime.identity_changed(await auth.current())   # rotates session, warms
    stats = await runtime.dashboard.fetch_dashboard_stats()
    leads = await runtime.records.fetch_leads_page(page=2)
    await runtime.dispose()
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from rayhar.auth import Identity, IdentityProvider
from rayhar.cache.aside import CacheAside
from rayhar.cache.clock import Clock, SystemClock
from rayhar.cache.errors import StorageError
from rayhar.cache.invalidation import PatternInvalidator
from rayhar.cache.janitor import Janitor
from rayhar.cache.keys import CacheKeys
from rayhar.cache.lifecycle import LifecycleSource, ManualLifecycleSource
from rayhar.cache.session import SessionIdentity
from rayhar.cache.storage import KeyValueStorage, MemoryStorage, redis_storage_from_url
from rayhar.cache.stores import CacheStore, DurableStore, EphemeralStore
from rayhar.cache.warmer import CacheWarmer, WarmReport
from rayhar.config import Settings, settings as default_settings
from rayhar.dashboard.catalog import dashboard_catalog
from rayhar.dashboard.fetchers import DashboardFetchers
from rayhar.dashboard.service import DashboardService
from rayhar.observability.logging import LogContext
from rayhar.observability.metrics import CacheMetrics
from rayhar.records.fetchers import RecordFetchers
from rayhar.records.service import RecordService

logger = logging.getLogger(__name__)


@dataclass
class TierStats:
    """Entry counts and payload size for one store."""

    tier: str
    total_entries: int = 0
    valid_entries: int = 0
    expired_entries: int = 0
    total_size_kb: float = 0.0


@dataclass
class CacheStats:
    """Snapshot across both stores."""

    prefix: str
    tiers: list[TierStats] = field(default_factory=list)

    @property
    def total_entries(self) -> int:
        return sum(t.total_entries for t in self.tiers)


def build_durable_storage(config: Settings) -> KeyValueStorage:
    """Storage for the durable tier according to configuration."""
    if config.durable_backend == "redis":
        return redis_storage_from_url(config.redis_url, match=f"{CacheKeys.PREFIX}*")
    return MemoryStorage(quota_bytes=config.memory_quota_bytes, name="durable-memory")


class CacheRuntime:
    """Owns the cache components and their lifecycle."""

    def __init__(
        self,
        config: Settings | None = None,
        clock: Clock | None = None,
        durable_storage: KeyValueStorage | None = None,
        ephemeral_storage: KeyValueStorage | None = None,
        lifecycle: LifecycleSource | None = None,
        fetchers: DashboardFetchers | None = None,
        identities: IdentityProvider | None = None,
        record_fetchers: RecordFetchers | None = None,
        metrics: CacheMetrics | None = None,
    ) -> None:
        self.config = config or default_settings
        if self.config.key_prefix != CacheKeys.PREFIX:
            logger.warning(
                f"Ignoring key_prefix={self.config.key_prefix!r}; "
                f"keys use the process-wide prefix {CacheKeys.PREFIX!r}"
            )
        self.clock = clock or SystemClock()
        self.metrics = metrics or CacheMetrics(enabled=self.config.enable_metrics)

        # A runtime that creates its own lifecycle source also fires its start
        self._owns_lifecycle = lifecycle is None
        self.lifecycle: LifecycleSource = lifecycle or ManualLifecycleSource()

        self.durable_storage = durable_storage or build_durable_storage(self.config)
        self.ephemeral_storage = ephemeral_storage or MemoryStorage(
            quota_bytes=self.config.memory_quota_bytes, name="ephemeral-memory"
        )

        self.session = SessionIdentity(self.ephemeral_storage, self.config.session_id_key)
        self.durable = DurableStore(
            self.durable_storage,
            self.config.durable_ttl_ms,
            clock=self.clock,
            metrics=self.metrics,
        )
        self.ephemeral = EphemeralStore(
            self.ephemeral_storage,
            self.config.ephemeral_ttl_ms,
            session=self.session,
            clock=self.clock,
            metrics=self.metrics,
        )

        self.invalidator = PatternInvalidator([self.durable, self.ephemeral])
        self.janitor = Janitor(
            [self.durable, self.ephemeral],
            self.lifecycle,
            interval_seconds=self.config.janitor_interval_seconds,
            debounce_seconds=self.config.foreground_debounce_seconds,
        )
        self.aside = CacheAside(self.durable)
        self.warmer = CacheWarmer(
            self.ephemeral,
            catalog=(
                dashboard_catalog(fetchers, limit=self.config.warm_limit, clock=self.clock)
                if fetchers is not None
                else None
            ),
            timeout=self.config.warm_timeout_seconds,
            metrics=self.metrics,
        )

        self.dashboard: DashboardService | None = None
        if fetchers is not None and identities is not None:
            self.dashboard = DashboardService(
                self.ephemeral,
                fetchers,
                identities,
                self.invalidator,
                clock=self.clock,
                leaderboard_timeout=self.config.leaderboard_timeout_seconds,
            )

        self.records: RecordService | None = None
        if record_fetchers is not None:
            self.records = RecordService(self.ephemeral, record_fetchers, self.invalidator)

        self._initialized = False
        self._user_id: str | None = None

    @property
    def stores(self) -> list[CacheStore]:
        return [self.durable, self.ephemeral]

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def init(self) -> None:
        """Index existing entries and start the janitor. Idempotent."""
        if self._initialized:
            return
        self._initialized = True

        for store in self.stores:
            try:
                store.index.rebuild(store.keys())
            except StorageError as e:
                logger.error(f"Could not index {store.tier} cache entries: {e}")

        await self.janitor.start()
        if self._owns_lifecycle and isinstance(self.lifecycle, ManualLifecycleSource):
            self.lifecycle.start()
        logger.info(
            "Cache runtime initialized",
            extra={"durable": len(self.durable.index), "ephemeral": len(self.ephemeral.index)},
        )

    async def dispose(self) -> None:
        """Stop background work. The stores stay readable."""
        if not self._initialized:
            return
        await self.warmer.drain()
        await self.janitor.stop()
        self._initialized = False
        logger.info("Cache runtime disposed")

    def identity_changed(
        self, identity: Identity | None, warm: bool = True
    ) -> asyncio.Task[WarmReport] | None:
        """React to sign-in, sign-out or a user switch.

        Rotates the session id (discarding ephemeral data of the previous
        user) whenever a known user signs out or is replaced, then schedules
        cache warming for the new identity.
        """
        new_user = identity.user_id if identity is not None else None
        if self._user_id is not None and new_user != self._user_id:
            self.session.rotate()
            cleared = self.ephemeral.clear()
            logger.info(f"Session changed, cleared {cleared} ephemeral cache entries")
        self._user_id = new_user

        if identity is None or not warm:
            return None
        # The warm task inherits this context
        with LogContext(session_id=self.session.current(), user_id=identity.user_id):
            return self.warmer.schedule(identity)

    def stats(self) -> CacheStats:
        """Entry counts and sizes per store."""
        now = self.clock.now_ms()
        stats = CacheStats(prefix=CacheKeys.PREFIX)
        for store in self.stores:
            tier = TierStats(tier=store.tier)
            size = 0
            try:
                entries = store.entries()
            except StorageError as e:
                logger.error(f"Error getting {store.tier} cache stats: {e}")
                entries = []
            for _key, entry in entries:
                tier.total_entries += 1
                if entry is None or entry.is_expired(now):
                    tier.expired_entries += 1
                else:
                    tier.valid_entries += 1
                    size += len(entry.to_bytes())
            tier.total_size_kb = round(size / 1024, 2)
            stats.tiers.append(tier)
        return stats
