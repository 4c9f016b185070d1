"""Tests for cache key generation."""

from rayhar.cache.keys import CacheKeys, ParsedKey


class TestCacheKeys:
    """Test cache key generation."""

    def test_build_key(self) -> None:
        """Key is prefix, namespace and identifier joined by underscores."""
        assert CacheKeys.build("leads", "all") == "rayhar_cache_leads_all"

    def test_dashboard_stats_key(self) -> None:
        """Dashboard stats key has correct format."""
        assert CacheKeys.dashboard_stats() == "rayhar_cache_dashboard_stats"

    def test_top_packages_key(self) -> None:
        """Top packages key carries filter and limit."""
        key = CacheKeys.top_packages("Umrah", 5)
        assert key == "rayhar_cache_dashboard_top_packages_Umrah_5"

    def test_top_sales_key(self) -> None:
        """Top sales key carries category and limit."""
        assert CacheKeys.top_sales("umrah", 5) == "rayhar_cache_dashboard_top_sales_umrah_5"

    def test_sales_inquiry_key(self) -> None:
        """Overview key keeps the filter name verbatim."""
        key = CacheKeys.sales_inquiry("Total Sales")
        assert key == "rayhar_cache_dashboard_sales_inquiry_Total Sales"

    def test_destinations_key(self) -> None:
        """Destination list key has correct format."""
        assert CacheKeys.destinations() == "rayhar_cache_destination_list"

    def test_leads_page_key_ignores_filter_order(self) -> None:
        """Equal filter sets produce the same key."""
        a = CacheKeys.leads_page(2, 20, {"status": "new", "branch": "kl"})
        b = CacheKeys.leads_page(2, 20, {"branch": "kl", "status": "new"})
        assert a == b
        assert a.startswith("rayhar_cache_leads_2_20_")

    def test_leads_page_key_without_filters(self) -> None:
        """Missing filters encode as an empty object."""
        assert CacheKeys.leads_page(1, 10) == "rayhar_cache_leads_1_10_{}"

    def test_customer_members_key_escapes_namespace(self) -> None:
        """Underscores inside a namespace are escaped."""
        key = CacheKeys.customer_members("c42")
        assert key == "rayhar_cache_customer%5Fmembers_c42"

    def test_namespace_escaping_is_injective(self) -> None:
        """Different (namespace, identifier) pairs never collide."""
        assert CacheKeys.build("a_b", "c") != CacheKeys.build("a", "b_c")
        assert CacheKeys.build("a%5Fb", "c") != CacheKeys.build("a_b", "c")

    def test_is_managed(self) -> None:
        """Only prefixed keys are managed."""
        assert CacheKeys.is_managed("rayhar_cache_leads_all") is True
        assert CacheKeys.is_managed("rayhar_session_id") is False
        assert CacheKeys.is_managed("theme") is False


class TestParseKey:
    """Test parsing keys back into components."""

    def test_parse_valid_key(self) -> None:
        """Valid key is parsed correctly."""
        parsed = CacheKeys.parse("rayhar_cache_dashboard_top_sales_umrah_5")
        assert parsed == ParsedKey(namespace="dashboard", identifier="top_sales_umrah_5")

    def test_parse_escaped_namespace(self) -> None:
        """Escaped namespace is restored."""
        parsed = CacheKeys.parse(CacheKeys.build("customer_members", "c42"))
        assert parsed is not None
        assert parsed.namespace == "customer_members"
        assert parsed.identifier == "c42"
        assert parsed.text == "customer_members_c42"

    def test_parse_round_trips_percent_sign(self) -> None:
        """A literal percent sign in a namespace survives escaping."""
        parsed = CacheKeys.parse(CacheKeys.build("50%_off", "x"))
        assert parsed is not None
        assert parsed.namespace == "50%_off"

    def test_parse_foreign_key(self) -> None:
        """Keys without the prefix are rejected."""
        assert CacheKeys.parse("other_leads_all") is None

    def test_parse_key_without_identifier_separator(self) -> None:
        """A key with no separator after the namespace is rejected."""
        assert CacheKeys.parse("rayhar_cache_leads") is None

    def test_parse_empty_identifier(self) -> None:
        """An empty identifier is allowed."""
        parsed = CacheKeys.parse("rayhar_cache_leads_")
        assert parsed == ParsedKey(namespace="leads", identifier="")
