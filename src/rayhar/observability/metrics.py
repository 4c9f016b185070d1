"""Prometheus metrics for the dashboard cache.

Provides counters for:
- Cache hits and misses per tier
- Writes and dropped writes (by reason)
- Evictions (expired, corrupt, session, invalidated)
- Warm task outcomes

Each CacheRuntime owns its own CollectorRegistry so several runtimes (one per
test, or one per tab in a simulation) never collide on metric names.

Usage:
    metrics = CacheMetrics()
    metrics.record_hit("durable")
    print(metrics.generate_latest().decode())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import CollectorRegistry, Counter, generate_latest

logger = logging.getLogger(__name__)


@dataclass
class CacheMetrics:
    """Registry for cache metrics."""

    enabled: bool = True
    registry: CollectorRegistry = field(default_factory=CollectorRegistry)

    hits_total: Any = field(default=None, init=False)
    misses_total: Any = field(default=None, init=False)
    writes_total: Any = field(default=None, init=False)
    dropped_writes_total: Any = field(default=None, init=False)
    evictions_total: Any = field(default=None, init=False)
    warm_tasks_total: Any = field(default=None, init=False)

    def __post_init__(self) -> None:
        if not self.enabled:
            logger.info("Cache metrics are disabled")
            return

        self.hits_total = Counter(
            "rayhar_cache_hits_total",
            "Cache hits",
            ["tier"],
            registry=self.registry,
        )
        self.misses_total = Counter(
            "rayhar_cache_misses_total",
            "Cache misses",
            ["tier"],
            registry=self.registry,
        )
        self.writes_total = Counter(
            "rayhar_cache_writes_total",
            "Cache writes persisted",
            ["tier"],
            registry=self.registry,
        )
        self.dropped_writes_total = Counter(
            "rayhar_cache_dropped_writes_total",
            "Cache writes dropped",
            ["tier", "reason"],
            registry=self.registry,
        )
        self.evictions_total = Counter(
            "rayhar_cache_evictions_total",
            "Cache entries removed",
            ["tier", "cause"],
            registry=self.registry,
        )
        self.warm_tasks_total = Counter(
            "rayhar_cache_warm_tasks_total",
            "Cache warm tasks by outcome",
            ["outcome"],
            registry=self.registry,
        )

    def record_hit(self, tier: str) -> None:
        if self.hits_total is not None:
            self.hits_total.labels(tier=tier).inc()

    def record_miss(self, tier: str) -> None:
        if self.misses_total is not None:
            self.misses_total.labels(tier=tier).inc()

    def record_write(self, tier: str) -> None:
        if self.writes_total is not None:
            self.writes_total.labels(tier=tier).inc()

    def record_dropped_write(self, tier: str, reason: str) -> None:
        if self.dropped_writes_total is not None:
            self.dropped_writes_total.labels(tier=tier, reason=reason).inc()

    def record_eviction(self, tier: str, cause: str, count: int = 1) -> None:
        if self.evictions_total is not None and count:
            self.evictions_total.labels(tier=tier, cause=cause).inc(count)

    def record_warm_outcome(self, outcome: str) -> None:
        if self.warm_tasks_total is not None:
            self.warm_tasks_total.labels(outcome=outcome).inc()

    def sample(self, name: str, labels: dict[str, str]) -> float:
        """Current value of a sample, 0.0 when absent or disabled."""
        if not self.enabled:
            return 0.0
        value = self.registry.get_sample_value(name, labels)
        return value or 0.0

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not self.enabled:
            return b"# Metrics disabled\n"
        return generate_latest(self.registry)
