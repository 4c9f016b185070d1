"""Session-cached helpers for the lead, customer and catalogue pages.

All entries live in the ephemeral store. Two caching policies apply:

- lists (leads, customers, umrah tables, destinations) are cached only when
  non-empty, and only a non-empty cached list counts as a hit, so an empty
  table is queried again on the next call;
- lead pages and customer member lists are cached whatever they contain,
  since an empty page or a customer without members is a real answer.

Query failures are logged and answered with an empty value that is never
cached.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from rayhar.cache.invalidation import InvalidationDomain, PatternInvalidator
from rayhar.cache.keys import CacheKeys
from rayhar.cache.stores import EphemeralStore
from rayhar.records.fetchers import RecordFetchers

logger = logging.getLogger(__name__)

UMRAH_TABLES = ("seasons", "categories", "airlines", "packages")


def _empty_page() -> dict[str, Any]:
    return {"data": [], "totalCount": 0}


class RecordService:
    """Cached access to the record pages' data."""

    def __init__(
        self,
        store: EphemeralStore,
        fetchers: RecordFetchers,
        invalidator: PatternInvalidator,
    ) -> None:
        self.store = store
        self.fetchers = fetchers
        self.invalidator = invalidator

    async def _cached_list(
        self, key: str, label: str, load: Callable[[], Awaitable[list[dict[str, Any]]]]
    ) -> list[dict[str, Any]]:
        cached = self.store.read(key)
        if isinstance(cached, list) and cached:
            logger.debug(f"{label} loaded from session cache ({len(cached)} items)")
            return cached

        try:
            rows = await load() or []
        except Exception as e:
            logger.error(f"Error fetching {label}: {e}")
            return []

        if rows:
            self.store.write(key, rows)
        else:
            logger.info(f"No {label} found, not caching empty result")
        return rows

    # -------------------------------------------------------------------------
    # Leads
    # -------------------------------------------------------------------------

    async def fetch_leads(self) -> list[dict[str, Any]]:
        return await self._cached_list(CacheKeys.leads_all(), "leads", self.fetchers.leads_all)

    async def fetch_leads_page(
        self, page: int = 1, limit: int = 10, filters: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """One page of leads as ``{"data": [...], "totalCount": n}``.

        A cached page is served only while it holds rows. A freshly loaded
        page is cached even when empty.
        """
        filters = filters or {}
        key = CacheKeys.leads_page(page, limit, filters)
        cached = self.store.read(key)
        if isinstance(cached, dict) and isinstance(cached.get("data"), list) and cached["data"]:
            return cached

        try:
            rows, total = await self.fetchers.leads_page(page, limit, filters)
        except Exception as e:
            logger.error(f"Error fetching leads page {page}: {e}")
            return _empty_page()

        result = {"data": rows or [], "totalCount": total or 0}
        self.store.write(key, result)
        return result

    def clear_leads_cache(self) -> int:
        """Drop the full list and every cached page."""
        return self.invalidator.invalidate_domain(InvalidationDomain.LEADS)

    def clear_leads_page(
        self, page: int = 1, limit: int = 10, filters: dict[str, Any] | None = None
    ) -> int:
        return self.invalidator.invalidate_key(CacheKeys.leads_page(page, limit, filters or {}))

    async def refresh_leads(self) -> list[dict[str, Any]]:
        self.clear_leads_cache()
        return await self.fetch_leads()

    async def refresh_leads_page(
        self, page: int = 1, limit: int = 10, filters: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        self.clear_leads_page(page, limit, filters)
        return await self.fetch_leads_page(page, limit, filters)

    # -------------------------------------------------------------------------
    # Customers
    # -------------------------------------------------------------------------

    async def fetch_customers(self) -> list[dict[str, Any]]:
        return await self._cached_list(
            CacheKeys.customers_all(), "customers", self.fetchers.customers_all
        )

    async def fetch_customer_members(self, customer_id: str) -> list[dict[str, Any]]:
        key = CacheKeys.customer_members(customer_id)
        cached = self.store.read(key)
        if isinstance(cached, list):
            return cached

        try:
            members = await self.fetchers.customer_members(customer_id) or []
        except Exception as e:
            logger.error(f"Error fetching members of customer {customer_id}: {e}")
            return []

        self.store.write(key, members)
        return members

    def clear_customer_cache(self) -> int:
        """Drop the customer list and every member list."""
        return self.invalidator.invalidate_domain(InvalidationDomain.CUSTOMERS)

    # -------------------------------------------------------------------------
    # Umrah tables and destinations
    # -------------------------------------------------------------------------

    async def fetch_umrah(self, kind: str) -> list[dict[str, Any]]:
        """Rows of one umrah lookup table.

        Raises:
            ValueError: if ``kind`` is not one of UMRAH_TABLES
        """
        if kind not in UMRAH_TABLES:
            raise ValueError(f"Unknown umrah table: {kind}")
        return await self._cached_list(
            CacheKeys.umrah(kind), f"umrah {kind}", lambda: self.fetchers.umrah_table(kind)
        )

    async def fetch_all_umrah_data(self) -> dict[str, list[dict[str, Any]]]:
        """Seasons, categories and airlines, loaded concurrently."""
        seasons, categories, airlines = await asyncio.gather(
            self.fetch_umrah("seasons"),
            self.fetch_umrah("categories"),
            self.fetch_umrah("airlines"),
        )
        logger.info(
            f"Umrah data loaded: {len(seasons)} seasons, "
            f"{len(categories)} categories, {len(airlines)} airlines"
        )
        return {"seasons": seasons, "categories": categories, "airlines": airlines}

    def clear_umrah_cache(self) -> int:
        return self.invalidator.invalidate_domain(InvalidationDomain.UMRAH)

    async def refresh_umrah_data(self) -> dict[str, list[dict[str, Any]]]:
        self.clear_umrah_cache()
        return await self.fetch_all_umrah_data()

    async def fetch_destinations(self) -> list[dict[str, Any]]:
        return await self._cached_list(
            CacheKeys.destinations(), "destinations", self.fetchers.destinations
        )

    def clear_destination_cache(self) -> int:
        return self.invalidator.invalidate_domain(InvalidationDomain.DESTINATION)

    async def refresh_destinations(self) -> list[dict[str, Any]]:
        self.clear_destination_cache()
        return await self.fetch_destinations()
