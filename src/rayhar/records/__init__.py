"""Cached lookups for the lead, customer and catalogue pages.

Provides:
- RecordFetchers: interface of the upstream Supabase queries
- RecordService: session-cached list helpers with their clear and refresh calls
"""

from rayhar.records.fetchers import RecordFetchers
from rayhar.records.service import UMRAH_TABLES, RecordService

__all__ = ["RecordFetchers", "RecordService", "UMRAH_TABLES"]
