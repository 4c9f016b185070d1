"""Bulk cache invalidation across both tiers.

Two ways to select entries:

- structured: ``invalidate("leads")`` or
  ``invalidate("dashboard", identifier_prefix="top_sales_")`` resolves keys
  through each store's namespace index;
- substring: ``invalidate_pattern("customers")`` removes every managed key
  whose text after the prefix contains the substring. This is the form the
  dashboard's clear helpers always used.

Each call first resyncs the index with the backend, so entries written by
another runtime sharing the durable storage are matched as well.

Example:
    invalidator = PatternInvalidator([durable, ephemeral])
    invalidator.invalidate_domain(InvalidationDomain.CUSTOMERS)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import Enum

from rayhar.cache.errors import StorageError
from rayhar.cache.keys import CacheKeys
from rayhar.cache.stores import CacheStore

logger = logging.getLogger(__name__)


class InvalidationDomain(str, Enum):
    """Data families the dashboard clears as a unit."""

    DASHBOARD = "dashboard"
    LEADS = "leads"
    CUSTOMERS = "customers"
    UMRAH = "umrah"
    DESTINATION = "destination"


# Namespaces cleared for each domain
DOMAIN_NAMESPACES: dict[InvalidationDomain, tuple[str, ...]] = {
    InvalidationDomain.DASHBOARD: ("dashboard",),
    InvalidationDomain.LEADS: ("leads",),
    InvalidationDomain.CUSTOMERS: ("customers", "customer_members"),
    InvalidationDomain.UMRAH: ("umrah",),
    InvalidationDomain.DESTINATION: ("destination",),
}


class PatternInvalidator:
    """Deletes groups of cache entries from every store."""

    def __init__(self, stores: Sequence[CacheStore]) -> None:
        self.stores = list(stores)

    def invalidate(self, namespace: str, identifier_prefix: str | None = None) -> int:
        """Remove all keys of a namespace, optionally narrowed by identifier prefix.

        Returns the number of keys deleted.
        """
        deleted = 0
        for store in self.stores:
            self._resync(store)
            keys = store.index.keys_in(namespace, identifier_prefix)
            for key in keys:
                store.remove(key)
            store.metrics.record_eviction(store.tier, "invalidated", len(keys))
            deleted += len(keys)

        if deleted:
            scope = f"{namespace}/{identifier_prefix}*" if identifier_prefix else namespace
            logger.info(f"Invalidated {deleted} cache entries for {scope}")
        return deleted

    def invalidate_pattern(self, substring: str) -> int:
        """Remove every managed key whose "namespace_identifier" text contains ``substring``.

        A full cache key is accepted too and matched by its text after the prefix.
        Returns the number of keys deleted.
        """
        parsed_pattern = CacheKeys.parse(substring)
        needle = parsed_pattern.text if parsed_pattern is not None else substring

        deleted = 0
        for store in self.stores:
            self._resync(store)
            matched = 0
            for key in store.index.all_keys():
                parsed = CacheKeys.parse(key)
                if parsed is not None and needle in parsed.text:
                    store.remove(key)
                    matched += 1
            store.metrics.record_eviction(store.tier, "invalidated", matched)
            deleted += matched

        if deleted:
            logger.info(f"Invalidated {deleted} cache entries for pattern: {substring}")
        return deleted

    def invalidate_key(self, key: str) -> int:
        """Remove one exact key from every store that holds it."""
        deleted = 0
        for store in self.stores:
            self._resync(store)
            if key in store.index:
                store.remove(key)
                store.metrics.record_eviction(store.tier, "invalidated")
                deleted += 1
        if deleted:
            logger.info(f"Invalidated cache entry {key}")
        return deleted

    def invalidate_domain(self, domain: InvalidationDomain) -> int:
        """Clear one dashboard data family."""
        logger.info(f"Clearing {domain.value} cache")
        return sum(self.invalidate(ns) for ns in DOMAIN_NAMESPACES[domain])

    def clear_all(self) -> int:
        """Remove every managed entry from every store."""
        cleared = sum(store.clear() for store in self.stores)
        logger.info(f"Cleared all {cleared} cache entries")
        return cleared

    @staticmethod
    def _resync(store: CacheStore) -> None:
        # Pick up entries written by other runtimes sharing the backend
        try:
            store.index.rebuild(store.keys())
        except StorageError as e:
            logger.warning(f"Could not list {store.tier} cache keys, using index: {e}")
