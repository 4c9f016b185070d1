"""Cache warming for the ephemeral tier.

Once the signed-in identity is known, the warmer pre-populates a catalog of
ephemeral keys so the dashboard renders from cache. Every catalog task runs
concurrently and in isolation: a failing fetch never cancels or delays the
others, and ``warm`` itself never raises.

Per task:

    pending -> already_cached                       (non-empty valid value present)
    pending -> fetching -> cached                   (non-empty result written)
                        -> cached_empty             (empty result written on purpose)
                        -> skipped_no_cache         (retry policy: failure/empty not cached)
                        -> cached_empty_on_error    (list policy: failure cached as empty)

Example:
    warmer = CacheWarmer(ephemeral, catalog=dashboard_catalog(fetchers))
    warmer.schedule(identity)   # fire-and-forget
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from rayhar.auth import Identity
from rayhar.cache.aside import fetch_with_timeout
from rayhar.cache.stores import CacheStore
from rayhar.observability.metrics import CacheMetrics

logger = logging.getLogger(__name__)

_TIMED_OUT = object()


class WarmPolicy(str, Enum):
    """What to do when a task's fetch fails or returns nothing."""

    # List-shaped data: cache an explicit empty value to avoid refetch loops
    CACHE_EMPTY_ON_ERROR = "cache_empty_on_error"
    # Stats and overviews: leave the key absent so a real request retries
    RETRY_ON_ERROR = "retry_on_error"


class WarmOutcome(str, Enum):
    """Terminal state of a warm task."""

    ALREADY_CACHED = "already_cached"
    CACHED = "cached"
    CACHED_EMPTY = "cached_empty"
    SKIPPED_NO_CACHE = "skipped_no_cache"
    CACHED_EMPTY_ON_ERROR = "cached_empty_on_error"


@dataclass(frozen=True)
class WarmTask:
    """One catalog entry: a key and the fetcher that fills it."""

    key: str
    fetch: Callable[[], Awaitable[Any]]
    policy: WarmPolicy = WarmPolicy.CACHE_EMPTY_ON_ERROR
    empty: Any = field(default_factory=list)
    ttl_ms: int | None = None


@dataclass
class WarmReport:
    """Outcome of one warm run."""

    outcomes: dict[str, WarmOutcome] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    def count(self, outcome: WarmOutcome) -> int:
        return sum(1 for o in self.outcomes.values() if o == outcome)

    @property
    def failed(self) -> list[str]:
        return list(self.errors)


Catalog = Callable[[Identity], Sequence[WarmTask]]


def has_value(payload: Any) -> bool:
    """True for a cached value worth keeping (non-empty containers, non-None scalars)."""
    if payload is None:
        return False
    if isinstance(payload, (list, dict, tuple, str)):
        return len(payload) > 0
    return True


class CacheWarmer:
    """Populates a catalog of keys concurrently, tolerating partial failure."""

    def __init__(
        self,
        store: CacheStore,
        catalog: Catalog | None = None,
        timeout: float | None = None,
        metrics: CacheMetrics | None = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.timeout = timeout
        self.metrics = metrics or store.metrics
        self._pending: set[asyncio.Task[WarmReport]] = set()

    async def warm(self, identity: Identity | None) -> WarmReport:
        """Warm the catalog for ``identity``. Never raises."""
        if identity is None:
            logger.info("Skip warming cache: user not authenticated yet")
            return WarmReport()
        if self.catalog is None:
            logger.debug("No warm catalog configured")
            return WarmReport()

        try:
            tasks = list(self.catalog(identity))
        except Exception as e:
            logger.warning(f"Failed to build warm catalog: {e}")
            return WarmReport()

        logger.info(f"Warming {len(tasks)} caches in background")
        report = await self.warm_tasks(tasks)
        logger.info(
            "Caches warmed",
            extra={outcome.value: report.count(outcome) for outcome in WarmOutcome},
        )
        return report

    async def warm_tasks(self, tasks: Sequence[WarmTask]) -> WarmReport:
        """Run ``tasks`` concurrently and collect every outcome."""
        report = WarmReport()
        results = await asyncio.gather(
            *(self._warm_one(task, report) for task in tasks),
            return_exceptions=True,
        )
        for task, result in zip(tasks, results):
            if isinstance(result, BaseException):
                # Only reachable through a bug in the task plumbing itself
                logger.error(f"Warm task {task.key} crashed: {result}")
                report.errors.setdefault(task.key, str(result))
                report.outcomes[task.key] = WarmOutcome.SKIPPED_NO_CACHE
            else:
                report.outcomes[task.key] = result
            self.metrics.record_warm_outcome(report.outcomes[task.key].value)
        return report

    def schedule(self, identity: Identity | None) -> asyncio.Task[WarmReport]:
        """Start warming without waiting for it."""
        task = asyncio.create_task(self.warm(identity))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for scheduled warm runs to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def _warm_one(self, task: WarmTask, report: WarmReport) -> WarmOutcome:
        if has_value(self.store.read(task.key)):
            return WarmOutcome.ALREADY_CACHED

        try:
            data = await self._fetch(task)
        except Exception as e:
            report.errors[task.key] = str(e) or e.__class__.__name__
            return self._on_failure(task, e)

        if not has_value(data):
            if task.policy is WarmPolicy.RETRY_ON_ERROR:
                logger.debug(f"Not caching empty result for {task.key}")
                return WarmOutcome.SKIPPED_NO_CACHE
            self.store.write(task.key, task.empty if data is None else data, task.ttl_ms)
            logger.debug(f"Warmed cache: {task.key} (0 items)")
            return WarmOutcome.CACHED_EMPTY

        outcome = self.store.write(task.key, data, task.ttl_ms)
        if outcome.dropped:
            return WarmOutcome.SKIPPED_NO_CACHE
        size = len(data) if isinstance(data, (list, dict)) else 1
        logger.debug(f"Warmed cache: {task.key} ({size} items)")
        return WarmOutcome.CACHED

    async def _fetch(self, task: WarmTask) -> Any:
        if self.timeout is None:
            return await task.fetch()
        result = await fetch_with_timeout(task.fetch, self.timeout, _TIMED_OUT)
        if result is _TIMED_OUT:
            raise asyncio.TimeoutError(f"warm fetch timed out after {self.timeout:g}s")
        return result

    def _on_failure(self, task: WarmTask, error: Exception) -> WarmOutcome:
        if task.policy is WarmPolicy.RETRY_ON_ERROR:
            logger.warning(f"Warm fetch failed for {task.key}, leaving uncached: {error}")
            return WarmOutcome.SKIPPED_NO_CACHE
        logger.warning(f"Warm fetch failed for {task.key}, caching empty result: {error}")
        self.store.write(task.key, task.empty, task.ttl_ms)
        return WarmOutcome.CACHED_EMPTY_ON_ERROR
