"""Dashboard data helpers on top of the cache.

Provides:
- DashboardFetchers: interface of the upstream Supabase queries
- DashboardService: cached read-through helpers for each widget
- dashboard_catalog: warm catalog for the landing page
"""

from rayhar.dashboard.catalog import dashboard_catalog
from rayhar.dashboard.fetchers import DashboardFetchers
from rayhar.dashboard.rollups import consultant_card, process_sales_inquiry_data
from rayhar.dashboard.service import DashboardService

__all__ = [
    "DashboardFetchers",
    "DashboardService",
    "consultant_card",
    "dashboard_catalog",
    "process_sales_inquiry_data",
]
