"""Uncached dashboard loads shared by the read-through helpers and the warmer.

Each loader picks the organisation-wide or branch-scoped query from the
identity and applies the widget transform.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from rayhar.auth import Identity
from rayhar.cache.clock import Clock
from rayhar.dashboard.fetchers import DashboardFetchers
from rayhar.dashboard.rollups import (
    OVERVIEW_DAYS,
    SALES_FILTER,
    consultant_card,
    process_sales_inquiry_data,
)


def utc_now(clock: Clock) -> datetime:
    return datetime.fromtimestamp(clock.now_ms() / 1000, tz=timezone.utc)


async def load_dashboard_stats(
    fetchers: DashboardFetchers, identity: Identity, clock: Clock
) -> dict[str, Any]:
    """Counters payload: ``{"stats": ..., "userRole": ..., "timestamp": ...}``.

    Returns an empty dict when the query yields no counters, so callers can
    tell a real result from nothing.
    """
    branch_id = identity.scoped_branch
    if branch_id is None:
        stats = await fetchers.stats_for_super_admin()
    else:
        stats = await fetchers.stats_for_branch(branch_id)
    if not stats:
        return {}
    return {
        "stats": stats,
        "userRole": identity.effective_role,
        "timestamp": clock.now_ms(),
    }


async def load_top_packages(
    fetchers: DashboardFetchers, identity: Identity, filter_name: str, limit: int
) -> list[dict[str, Any]]:
    return list(await fetchers.top_packages(filter_name, limit, identity.scoped_branch) or [])


async def load_top_inquiries(
    fetchers: DashboardFetchers, identity: Identity, filter_name: str, limit: int
) -> list[dict[str, Any]]:
    return list(await fetchers.top_inquiries(filter_name, limit, identity.scoped_branch) or [])


async def load_top_sales(
    fetchers: DashboardFetchers, category: str, limit: int
) -> list[dict[str, Any]]:
    rows = await fetchers.top_sales_consultants(category, limit)
    return [consultant_card(row) for row in rows or []]


async def load_sales_inquiry(
    fetchers: DashboardFetchers, filter_name: str, clock: Clock
) -> list[dict[str, Any]]:
    now = utc_now(clock)
    since = now - timedelta(days=OVERVIEW_DAYS)
    if filter_name == SALES_FILTER:
        rows = await fetchers.bookings_since(since)
    else:
        rows = await fetchers.leads_since(since)
    return process_sales_inquiry_data(rows or [], filter_name, now.date())
