"""Warm catalog for the dashboard landing page.

For a signed-in identity the catalog covers:
- dashboard counters (retried on failure, never cached empty)
- top packages and top inquiries for every package filter
- top sales consultants for every category
- the three-day sales and inquiry overviews (retried on failure)
"""

from __future__ import annotations

from functools import partial

from rayhar.auth import Identity
from rayhar.cache.clock import Clock, SystemClock
from rayhar.cache.keys import CacheKeys
from rayhar.cache.warmer import Catalog, WarmPolicy, WarmTask
from rayhar.config import settings
from rayhar.dashboard.fetchers import DashboardFetchers
from rayhar.dashboard.loaders import (
    load_dashboard_stats,
    load_sales_inquiry,
    load_top_inquiries,
    load_top_packages,
    load_top_sales,
)
from rayhar.dashboard.rollups import INQUIRY_FILTER, SALES_FILTER

PACKAGE_FILTERS = ("keseluruhan", "Umrah", "Pelancongan")
INQUIRY_FILTERS = ("keseluruhan", "Umrah", "Pelancongan")
CONSULTANT_CATEGORIES = ("umrah", "pelancongan")
OVERVIEW_FILTERS = (SALES_FILTER, INQUIRY_FILTER)


def dashboard_catalog(
    fetchers: DashboardFetchers,
    limit: int = settings.warm_limit,
    clock: Clock | None = None,
) -> Catalog:
    """Build the catalog function for ``CacheWarmer``."""
    clock = clock or SystemClock()

    def build(identity: Identity) -> list[WarmTask]:
        tasks = [
            WarmTask(
                key=CacheKeys.dashboard_stats(),
                fetch=partial(load_dashboard_stats, fetchers, identity, clock),
                policy=WarmPolicy.RETRY_ON_ERROR,
                empty={},
            )
        ]
        tasks += [
            WarmTask(
                key=CacheKeys.top_packages(name, limit),
                fetch=partial(load_top_packages, fetchers, identity, name, limit),
            )
            for name in PACKAGE_FILTERS
        ]
        tasks += [
            WarmTask(
                key=CacheKeys.top_inquiries(name, limit),
                fetch=partial(load_top_inquiries, fetchers, identity, name, limit),
            )
            for name in INQUIRY_FILTERS
        ]
        tasks += [
            WarmTask(
                key=CacheKeys.top_sales(category, limit),
                fetch=partial(load_top_sales, fetchers, category, limit),
            )
            for category in CONSULTANT_CATEGORIES
        ]
        tasks += [
            WarmTask(
                key=CacheKeys.sales_inquiry(name),
                fetch=partial(load_sales_inquiry, fetchers, name, clock),
                policy=WarmPolicy.RETRY_ON_ERROR,
            )
            for name in OVERVIEW_FILTERS
        ]
        return tasks

    return build
