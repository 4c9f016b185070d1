"""Interface of the upstream dashboard queries.

The real implementations query Supabase tables (bookings, leads, packages,
sales consultants). The cache treats every method as an opaque async call that
returns plain data or raises.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol


class DashboardFetchers(Protocol):
    """Async data sources behind the dashboard widgets."""

    async def stats_for_super_admin(self) -> dict[str, Any]:
        """Organisation-wide booking and lead counters."""
        ...

    async def stats_for_branch(self, branch_id: str) -> dict[str, Any]:
        """Booking and lead counters for one branch."""
        ...

    async def top_packages(
        self, filter_name: str, limit: int, branch_id: str | None = None
    ) -> list[dict[str, Any]]:
        """Best-selling packages; organisation-wide when branch_id is None."""
        ...

    async def top_inquiries(
        self, filter_name: str, limit: int, branch_id: str | None = None
    ) -> list[dict[str, Any]]:
        """Most-inquired packages; organisation-wide when branch_id is None."""
        ...

    async def top_sales_consultants(self, category: str, limit: int) -> list[dict[str, Any]]:
        """Raw consultant leaderboard rows for a category."""
        ...

    async def bookings_since(self, since: datetime) -> list[dict[str, Any]]:
        """Booking rows (created_at, umrah_category_id, total_price, bilangan)."""
        ...

    async def leads_since(self, since: datetime) -> list[dict[str, Any]]:
        """Lead rows (created_at, category_id)."""
        ...
