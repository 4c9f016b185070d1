"""Global pytest configuration and fixtures.

Provides a manual clock and freshly wired stores so every test runs against
its own storage, session and metrics registry.
"""

from __future__ import annotations

import pytest

from rayhar.cache.session import SessionIdentity
from rayhar.cache.storage import MemoryStorage
from rayhar.cache.stores import DurableStore, EphemeralStore
from rayhar.observability.metrics import CacheMetrics

START_MS = 1_700_000_000_000


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now_ms: int = START_MS) -> None:
        self.now = now_ms

    def now_ms(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class TokenSequence:
    """Deterministic session token factory: sess-1, sess-2, ..."""

    def __init__(self) -> None:
        self.issued = 0

    def __call__(self) -> str:
        self.issued += 1
        return f"sess-{self.issued}"


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def metrics() -> CacheMetrics:
    return CacheMetrics()


@pytest.fixture
def durable_storage() -> MemoryStorage:
    return MemoryStorage(name="durable-memory")


@pytest.fixture
def ephemeral_storage() -> MemoryStorage:
    return MemoryStorage(name="ephemeral-memory")


@pytest.fixture
def session(ephemeral_storage: MemoryStorage) -> SessionIdentity:
    return SessionIdentity(ephemeral_storage, "rayhar_session_id", token_factory=TokenSequence())


@pytest.fixture
def durable(
    durable_storage: MemoryStorage, clock: ManualClock, metrics: CacheMetrics
) -> DurableStore:
    return DurableStore(durable_storage, 600_000, clock=clock, metrics=metrics)


@pytest.fixture
def ephemeral(
    ephemeral_storage: MemoryStorage,
    session: SessionIdentity,
    clock: ManualClock,
    metrics: CacheMetrics,
) -> EphemeralStore:
    return EphemeralStore(
        ephemeral_storage, 86_400_000, session=session, clock=clock, metrics=metrics
    )


class FakeFetchers:
    """In-memory stand-in for the Supabase dashboard queries.

    Records every call in ``calls``; set ``failures[name]`` to an exception to
    make that query raise.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.failures: dict[str, Exception] = {}
        self.stats = {"totalBookings": 12, "totalLeads": 30}
        self.packages = [{"id": "p1", "name": "Umrah Ramadan", "total": 9}]
        self.inquiries = [{"id": "p2", "name": "Umrah Plus", "total": 4}]
        self.consultants = [{"id": "c1", "name": "Siti Aminah", "totalRevenue": 5000}]
        self.bookings: list[dict] = []
        self.leads: list[dict] = []

    def _record(self, name: str, *args):
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def stats_for_super_admin(self):
        self._record("stats_for_super_admin")
        return dict(self.stats)

    async def stats_for_branch(self, branch_id):
        self._record("stats_for_branch", branch_id)
        return dict(self.stats)

    async def top_packages(self, filter_name, limit, branch_id=None):
        self._record("top_packages", filter_name, limit, branch_id)
        return list(self.packages)

    async def top_inquiries(self, filter_name, limit, branch_id=None):
        self._record("top_inquiries", filter_name, limit, branch_id)
        return list(self.inquiries)

    async def top_sales_consultants(self, category, limit):
        self._record("top_sales_consultants", category, limit)
        return list(self.consultants)

    async def bookings_since(self, since):
        self._record("bookings_since", since)
        return list(self.bookings)

    async def leads_since(self, since):
        self._record("leads_since", since)
        return list(self.leads)


@pytest.fixture
def fetchers() -> FakeFetchers:
    return FakeFetchers()


class FakeRecordFetchers:
    """In-memory stand-in for the lead, customer and catalogue queries."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.failures: dict[str, Exception] = {}
        self.leads = [{"id": "l1", "full_name": "Ahmad"}, {"id": "l2", "full_name": "Aisyah"}]
        self.customers = [{"id": "c1", "nama": "Rosli"}]
        self.members: dict[str, list[dict]] = {"c1": [{"id": "m1", "nama": "Zainab"}]}
        self.umrah: dict[str, list[dict]] = {
            "seasons": [{"id": "s1", "name": "Ramadan"}],
            "categories": [{"id": "k1", "name": "Premium"}],
            "airlines": [{"id": "a1", "name": "Saudia"}],
            "packages": [],
        }
        self.destination_rows = [{"id": "d1", "name": "Turki"}]

    def _record(self, name: str, *args):
        self.calls.append((name, *args))
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def leads_all(self):
        self._record("leads_all")
        return list(self.leads)

    async def leads_page(self, page, limit, filters):
        self._record("leads_page", page, limit, filters)
        start = (page - 1) * limit
        return self.leads[start : start + limit], len(self.leads)

    async def customers_all(self):
        self._record("customers_all")
        return list(self.customers)

    async def customer_members(self, customer_id):
        self._record("customer_members", customer_id)
        return list(self.members.get(customer_id, []))

    async def umrah_table(self, kind):
        self._record("umrah_table", kind)
        return list(self.umrah[kind])

    async def destinations(self):
        self._record("destinations")
        return list(self.destination_rows)


@pytest.fixture
def record_fetchers() -> FakeRecordFetchers:
    return FakeRecordFetchers()
