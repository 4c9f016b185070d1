"""Interface of the upstream queries behind the record pages."""

from __future__ import annotations

from typing import Any, Protocol


class RecordFetchers(Protocol):
    """Async data sources for leads, customers and catalogue tables."""

    async def leads_all(self) -> list[dict[str, Any]]:
        """Every lead, newest first."""
        ...

    async def leads_page(
        self, page: int, limit: int, filters: dict[str, Any]
    ) -> tuple[list[dict[str, Any]], int | None]:
        """One page of leads and the total row count for the filters."""
        ...

    async def customers_all(self) -> list[dict[str, Any]]: ...

    async def customer_members(self, customer_id: str) -> list[dict[str, Any]]:
        """Additional travellers booked with one customer."""
        ...

    async def umrah_table(self, kind: str) -> list[dict[str, Any]]:
        """Rows of an umrah lookup table: seasons, categories, airlines or packages."""
        ...

    async def destinations(self) -> list[dict[str, Any]]: ...
