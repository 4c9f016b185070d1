"""Cache key schema for the Rayhar dashboard.

Key format: {prefix}{namespace}_{identifier}

Where:
- prefix: "rayhar_cache_" (marks keys owned by this cache in shared storage)
- namespace: data family, e.g. "dashboard", "leads", "customers"
- identifier: free-form, e.g. "stats", "top_packages_Umrah_5"

Underscores and percent signs in the namespace are percent-escaped so the
first underscore after the prefix always ends the namespace. Identifiers are
stored verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import orjson

from rayhar.config import settings

SEPARATOR = "_"


@dataclass(frozen=True)
class ParsedKey:
    """Components of a managed cache key."""

    namespace: str
    identifier: str

    @property
    def text(self) -> str:
        """Unescaped "namespace_identifier" form used for substring matching."""
        return f"{self.namespace}{SEPARATOR}{self.identifier}"


def _escape_namespace(namespace: str) -> str:
    return namespace.replace("%", "%25").replace(SEPARATOR, "%5F")


def _unescape_namespace(escaped: str) -> str:
    return escaped.replace("%5F", SEPARATOR).replace("%25", "%")


class CacheKeys:
    """Cache key generator following consistent naming convention."""

    PREFIX = settings.key_prefix

    @classmethod
    def build(cls, namespace: str, identifier: str) -> str:
        """Build the key for an identifier inside a namespace."""
        return f"{cls.PREFIX}{_escape_namespace(namespace)}{SEPARATOR}{identifier}"

    @classmethod
    def is_managed(cls, key: str) -> bool:
        """True if the key carries this cache's prefix."""
        return key.startswith(cls.PREFIX)

    @classmethod
    def remainder(cls, key: str) -> str | None:
        """Key text after the prefix, or None for foreign keys."""
        if not cls.is_managed(key):
            return None
        return key[len(cls.PREFIX) :]

    @classmethod
    def parse(cls, key: str) -> ParsedKey | None:
        """Parse a cache key into its components.

        Returns None if the key doesn't match the expected format.
        """
        rest = cls.remainder(key)
        if rest is None:
            return None
        namespace, sep, identifier = rest.partition(SEPARATOR)
        if not sep or not namespace:
            return None
        return ParsedKey(namespace=_unescape_namespace(namespace), identifier=identifier)

    # -------------------------------------------------------------------------
    # Dashboard keys
    # -------------------------------------------------------------------------

    @classmethod
    def dashboard_stats(cls) -> str:
        return cls.build("dashboard", "stats")

    @classmethod
    def top_packages(cls, filter_name: str, limit: int) -> str:
        return cls.build("dashboard", f"top_packages_{filter_name}_{limit}")

    @classmethod
    def top_inquiries(cls, filter_name: str, limit: int) -> str:
        return cls.build("dashboard", f"top_inquiries_{filter_name}_{limit}")

    @classmethod
    def top_sales(cls, category: str, limit: int) -> str:
        return cls.build("dashboard", f"top_sales_{category}_{limit}")

    @classmethod
    def sales_inquiry(cls, filter_name: str) -> str:
        return cls.build("dashboard", f"sales_inquiry_{filter_name}")

    # -------------------------------------------------------------------------
    # Lead, customer and catalogue keys
    # -------------------------------------------------------------------------

    @classmethod
    def leads_all(cls) -> str:
        return cls.build("leads", "all")

    @classmethod
    def leads_page(cls, page: int, limit: int, filters: dict[str, Any] | None = None) -> str:
        """Key for one page of leads.

        Filters are serialized with sorted keys so equal filter sets map to
        the same key regardless of insertion order.
        """
        encoded = orjson.dumps(filters or {}, option=orjson.OPT_SORT_KEYS).decode()
        return cls.build("leads", f"{page}_{limit}_{encoded}")

    @classmethod
    def customers_all(cls) -> str:
        return cls.build("customers", "all")

    @classmethod
    def customer_members(cls, customer_id: str) -> str:
        return cls.build("customer_members", customer_id)

    @classmethod
    def umrah(cls, kind: str) -> str:
        """Key for an umrah lookup table (seasons, categories, airlines)."""
        return cls.build("umrah", kind)

    @classmethod
    def destinations(cls) -> str:
        return cls.build("destination", "list")
