"""Background sweeper for expired cache entries.

Sweeps every store:
- on a fixed interval (5 minutes by default);
- once when the lifecycle source signals start;
- on foreground signals, debounced so rapid focus flapping causes one sweep.

Example:
    janitor = Janitor([durable, ephemeral], lifecycle)
    await janitor.start()
    ...
    await janitor.stop()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence

from rayhar.cache.entry import SweepReport
from rayhar.cache.lifecycle import LifecycleSource, Unsubscribe
from rayhar.cache.stores import CacheStore
from rayhar.config import settings

logger = logging.getLogger(__name__)


class Janitor:
    """Periodic and signal-driven sweeper.

    ``start()`` is idempotent: however many times it is called, at most one
    interval timer and one listener per signal are registered.
    """

    def __init__(
        self,
        stores: Sequence[CacheStore],
        lifecycle: LifecycleSource,
        interval_seconds: float = settings.janitor_interval_seconds,
        debounce_seconds: float = settings.foreground_debounce_seconds,
    ) -> None:
        self.stores = list(stores)
        self.lifecycle = lifecycle
        self.interval_seconds = interval_seconds
        self.debounce_seconds = debounce_seconds
        self.sweeps_run = 0
        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._debounce: asyncio.TimerHandle | None = None
        self._unsubscribers: list[Unsubscribe] = []

    @property
    def running(self) -> bool:
        return self._task is not None

    @property
    def active_timers(self) -> int:
        return 1 if self._task is not None and not self._task.done() else 0

    @property
    def active_listeners(self) -> int:
        return len(self._unsubscribers)

    async def start(self) -> None:
        """Start the interval timer and subscribe to lifecycle signals."""
        if self._task is not None:
            logger.debug("Cache janitor already running")
            return

        self._loop = asyncio.get_running_loop()
        self._task = asyncio.create_task(self._interval_loop())
        self._unsubscribers = [
            self.lifecycle.on_start(self._on_start),
            self.lifecycle.on_foreground(self._on_foreground),
        ]
        logger.info(f"Started cache janitor (every {self.interval_seconds:g}s)")

    async def stop(self) -> int:
        """Cancel the timer, any pending debounce and detach listeners.

        Returns the number of interval timers cancelled.
        """
        cancelled = 0

        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
            cancelled = 1

        self._loop = None
        if cancelled:
            logger.info("Stopped cache janitor")
        return cancelled

    def sweep_now(self) -> SweepReport:
        """Sweep every store once.

        Raises:
            StorageError: if a store cannot be enumerated
        """
        report = SweepReport()
        for store in self.stores:
            report = report.merge(store.sweep())
        self.sweeps_run += 1
        return report

    # -------------------------------------------------------------------------
    # Triggers
    # -------------------------------------------------------------------------

    async def _interval_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self._safe_sweep("interval")

    def _on_start(self) -> None:
        self._safe_sweep("start")

    def _on_foreground(self) -> None:
        if self._loop is None:
            return
        if self._debounce is not None:
            self._debounce.cancel()
        self._debounce = self._loop.call_later(self.debounce_seconds, self._debounced_sweep)

    def _debounced_sweep(self) -> None:
        self._debounce = None
        self._safe_sweep("foreground")

    def _safe_sweep(self, trigger: str) -> None:
        try:
            report = self.sweep_now()
        except Exception as e:
            logger.error(f"Cache sweep ({trigger}) failed: {e}")
            return
        logger.debug(
            f"Cache sweep ({trigger}) scanned {report.scanned}, removed {report.removed}"
        )
