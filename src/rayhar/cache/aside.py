"""Cache-aside ("smart cache") reads over the durable store.

    aside = CacheAside(durable)
    leads = await aside.get_or_fetch(CacheKeys.leads_all(), fetch_leads)

A hit returns the cached payload without calling the fetcher. A miss awaits
the fetcher, writes its result and returns it. Fetcher errors propagate to the
caller and nothing is cached, so the next call fetches again.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from rayhar.cache.stores import CacheStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
F = TypeVar("F")

FetchFn = Callable[[], Awaitable[Any]]


class CacheAside:
    """Read-through/write-through wrapper around one store."""

    def __init__(self, store: CacheStore) -> None:
        self.store = store

    async def get_or_fetch(self, key: str, fetch_fn: FetchFn, ttl_ms: int | None = None) -> Any:
        """Return the cached payload for ``key`` or fetch, cache and return it.

        Cached empty values (``[]``, ``{}``, ``None``) count as hits.

        Raises:
            Exception: whatever ``fetch_fn`` raises; nothing is cached then
        """
        entry = self.store.lookup(key)
        if entry is not None:
            return entry.payload

        logger.debug(f"Cache miss: {key}, fetching data")
        data = await fetch_fn()

        outcome = self.store.write(key, data, ttl_ms)
        if outcome.dropped:
            logger.warning(f"Fetched {key} but could not cache it ({outcome.reason})")
        return data


async def fetch_with_timeout(
    fetch: Callable[[], Awaitable[T]],
    timeout: float,
    fallback: F,
) -> T | F:
    """Race ``fetch`` against a timer.

    On timeout the fallback is returned and the fetch keeps running in the
    background; its eventual result is discarded.
    """
    task = asyncio.ensure_future(fetch())
    try:
        return await asyncio.wait_for(asyncio.shield(task), timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Request timeout after {timeout:g}s, using fallback result")
        task.add_done_callback(_discard_result)
        return fallback


def _discard_result(task: asyncio.Future[Any]) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.debug(f"Timed-out fetch failed later: {task.exception()}")
