"""In-memory index of managed keys, grouped by namespace.

Each store keeps one index so namespace invalidation deletes only matching
keys. The index is rebuilt from the backend on runtime init, on every janitor
sweep and before each invalidation, which picks up entries written by other
processes sharing a durable backend.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from rayhar.cache.keys import CacheKeys


class KeyIndex:
    """Namespace -> keys mapping for one store."""

    def __init__(self) -> None:
        self._by_namespace: defaultdict[str, set[str]] = defaultdict(set)

    def __len__(self) -> int:
        return sum(len(keys) for keys in self._by_namespace.values())

    def __contains__(self, key: object) -> bool:
        parsed = CacheKeys.parse(key) if isinstance(key, str) else None
        return parsed is not None and key in self._by_namespace.get(parsed.namespace, ())

    def add(self, key: str) -> None:
        parsed = CacheKeys.parse(key)
        if parsed is not None:
            self._by_namespace[parsed.namespace].add(key)

    def discard(self, key: str) -> None:
        parsed = CacheKeys.parse(key)
        if parsed is None:
            return
        keys = self._by_namespace.get(parsed.namespace)
        if keys is None:
            return
        keys.discard(key)
        if not keys:
            del self._by_namespace[parsed.namespace]

    def rebuild(self, keys: Iterable[str]) -> None:
        """Replace the index contents with ``keys``."""
        self._by_namespace.clear()
        for key in keys:
            self.add(key)

    def namespaces(self) -> list[str]:
        return list(self._by_namespace)

    def keys_in(self, namespace: str, identifier_prefix: str | None = None) -> list[str]:
        """Keys of a namespace, optionally narrowed by identifier prefix."""
        keys = self._by_namespace.get(namespace, set())
        if identifier_prefix is None:
            return list(keys)
        matched = []
        for key in keys:
            parsed = CacheKeys.parse(key)
            if parsed is not None and parsed.identifier.startswith(identifier_prefix):
                matched.append(key)
        return matched

    def all_keys(self) -> list[str]:
        return [key for keys in self._by_namespace.values() for key in keys]
