"""Read-through helpers behind the dashboard widgets.

Every helper checks the ephemeral store first and only queries upstream on a
miss. Caching policy differs by widget:

- leaderboards (packages, inquiries, consultants) race their query against a
  timeout and cache whatever they end up with, an empty list included, so a
  slow or failing query is not retried on every render;
- counters and the sales/inquiry overview cache only real results; failures
  return a fallback that is not cached, so the next render retries.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from rayhar.auth import IdentityProvider
from rayhar.cache.aside import fetch_with_timeout
from rayhar.cache.clock import Clock, SystemClock
from rayhar.cache.invalidation import InvalidationDomain, PatternInvalidator
from rayhar.cache.keys import CacheKeys
from rayhar.cache.stores import EphemeralStore
from rayhar.config import settings
from rayhar.dashboard.fetchers import DashboardFetchers
from rayhar.dashboard.loaders import (
    load_dashboard_stats,
    load_sales_inquiry,
    load_top_inquiries,
    load_top_packages,
    load_top_sales,
)
from rayhar.dashboard.rollups import EMPTY_STATS, SALES_FILTER

logger = logging.getLogger(__name__)


class DashboardService:
    """Cached dashboard data access."""

    def __init__(
        self,
        store: EphemeralStore,
        fetchers: DashboardFetchers,
        identities: IdentityProvider,
        invalidator: PatternInvalidator,
        clock: Clock | None = None,
        leaderboard_timeout: float = settings.leaderboard_timeout_seconds,
    ) -> None:
        self.store = store
        self.fetchers = fetchers
        self.identities = identities
        self.invalidator = invalidator
        self.clock = clock or SystemClock()
        self.leaderboard_timeout = leaderboard_timeout

    # -------------------------------------------------------------------------
    # Counters
    # -------------------------------------------------------------------------

    async def fetch_dashboard_stats(self) -> dict[str, Any]:
        key = CacheKeys.dashboard_stats()
        cached = self.store.read(key)
        if isinstance(cached, dict) and cached:
            logger.debug("Dashboard stats loaded from session cache")
            return cached

        identity = await self.identities.current()
        if identity is None:
            logger.warning("Dashboard stats requested without a signed-in user")
            return self._stats_fallback(None)

        try:
            result = await load_dashboard_stats(self.fetchers, identity, self.clock)
        except Exception as e:
            logger.error(f"Error fetching dashboard stats: {e}")
            return self._stats_fallback(identity.effective_role)

        if not result:
            return self._stats_fallback(identity.effective_role)

        self.store.write(key, result)
        return result

    def _stats_fallback(self, role: str | None) -> dict[str, Any]:
        return {"stats": dict(EMPTY_STATS), "userRole": role, "timestamp": self.clock.now_ms()}

    # -------------------------------------------------------------------------
    # Leaderboards
    # -------------------------------------------------------------------------

    async def fetch_top_sales_consultants(
        self, category: str = "umrah", limit: int = 5
    ) -> list[dict[str, Any]]:
        key = CacheKeys.top_sales(category, limit)
        return await self._leaderboard(
            key, f"top sales ({category})", lambda: load_top_sales(self.fetchers, category, limit)
        )

    async def fetch_top_packages(
        self, filter_name: str = "umrah", limit: int = 5
    ) -> list[dict[str, Any]]:
        key = CacheKeys.top_packages(filter_name, limit)

        async def load() -> list[dict[str, Any]]:
            identity = await self.identities.current()
            if identity is None:
                raise PermissionError("User not authenticated")
            return await load_top_packages(self.fetchers, identity, filter_name, limit)

        return await self._leaderboard(key, f"top packages ({filter_name})", load)

    async def fetch_top_inquiries(
        self, filter_name: str = "umrah", limit: int = 5
    ) -> list[dict[str, Any]]:
        key = CacheKeys.top_inquiries(filter_name, limit)

        async def load() -> list[dict[str, Any]]:
            identity = await self.identities.current()
            if identity is None:
                raise PermissionError("User not authenticated")
            return await load_top_inquiries(self.fetchers, identity, filter_name, limit)

        return await self._leaderboard(key, f"top inquiries ({filter_name})", load)

    async def _leaderboard(
        self, key: str, label: str, load: Callable[[], Awaitable[list[dict[str, Any]]]]
    ) -> list[dict[str, Any]]:
        cached = self.store.read(key)
        if isinstance(cached, list):
            logger.debug(f"{label} loaded from session cache ({len(cached)} items)")
            return cached

        try:
            rows: list[dict[str, Any]] = await fetch_with_timeout(
                load, self.leaderboard_timeout, []
            )
        except Exception as e:
            logger.error(f"Error fetching {label}: {e}")
            rows = []

        # Empty results are cached too, to prevent refetch loops
        self.store.write(key, rows)
        return rows

    # -------------------------------------------------------------------------
    # Sales / inquiry overview
    # -------------------------------------------------------------------------

    async def fetch_sales_inquiry_data(
        self, filter_name: str = SALES_FILTER
    ) -> list[dict[str, Any]]:
        key = CacheKeys.sales_inquiry(filter_name)
        cached = self.store.read(key)
        if isinstance(cached, list):
            return cached

        try:
            daily = await load_sales_inquiry(self.fetchers, filter_name, self.clock)
        except Exception as e:
            logger.error(f"Error fetching sales inquiry data: {e}")
            return []

        self.store.write(key, daily)
        return daily

    # -------------------------------------------------------------------------
    # Cache management
    # -------------------------------------------------------------------------

    def clear_dashboard_cache(self) -> int:
        return self.invalidator.invalidate_domain(InvalidationDomain.DASHBOARD)
