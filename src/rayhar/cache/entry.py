"""Cache entry envelope and write outcomes.

Entries are stored as JSON documents:

    {"data": <payload>, "timestamp": <written_at ms>, "expiry": <ttl ms>}

Ephemeral entries carry an extra ``"sessionId"`` field binding them to the
session that wrote them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import orjson

from rayhar.cache.errors import CorruptEntryError


@dataclass(frozen=True)
class CacheEntry:
    """A cached payload with its expiry metadata."""

    key: str
    payload: Any
    written_at: int
    ttl_ms: int
    session_id: str | None = None

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.written_at

    def is_expired(self, now_ms: int) -> bool:
        """Expired once strictly more than ``ttl_ms`` has elapsed."""
        return self.age_ms(now_ms) > self.ttl_ms

    def remaining_ms(self, now_ms: int) -> int:
        return max(0, self.ttl_ms - self.age_ms(now_ms))

    def to_bytes(self) -> bytes:
        """Serialize to JSON bytes.

        Raises:
            TypeError: if the payload is not JSON serializable
        """
        document: dict[str, Any] = {
            "data": self.payload,
            "timestamp": self.written_at,
            "expiry": self.ttl_ms,
        }
        if self.session_id is not None:
            document["sessionId"] = self.session_id
        return orjson.dumps(document)

    @classmethod
    def from_bytes(cls, key: str, raw: bytes | str) -> CacheEntry:
        """Deserialize from JSON bytes.

        Raises:
            CorruptEntryError: if the value is not a well-formed entry
        """
        try:
            parsed = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise CorruptEntryError(key, f"invalid JSON: {e}") from e

        if not isinstance(parsed, dict) or "data" not in parsed:
            raise CorruptEntryError(key, "missing data field")

        written_at = parsed.get("timestamp")
        ttl_ms = parsed.get("expiry")
        # bool is an int subclass; reject it explicitly
        if not isinstance(written_at, int) or isinstance(written_at, bool):
            raise CorruptEntryError(key, "timestamp is not an integer")
        if not isinstance(ttl_ms, int) or isinstance(ttl_ms, bool):
            raise CorruptEntryError(key, "expiry is not an integer")

        session_id = parsed.get("sessionId")
        if session_id is not None and not isinstance(session_id, str):
            raise CorruptEntryError(key, "sessionId is not a string")

        return cls(
            key=key,
            payload=parsed["data"],
            written_at=written_at,
            ttl_ms=ttl_ms,
            session_id=session_id,
        )


class DropReason(str, Enum):
    """Why a cache write was not persisted."""

    QUOTA_EXCEEDED = "quota_exceeded"
    SERIALIZATION = "serialization"
    STORAGE_ERROR = "storage_error"


@dataclass(frozen=True)
class CacheWriteOutcome:
    """Result of a best-effort cache write.

    Writes never raise; a dropped write means the cache behaves as if the
    entry had never been written.
    """

    key: str
    reason: DropReason | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.reason is None

    @property
    def dropped(self) -> bool:
        return self.reason is not None

    @classmethod
    def stored(cls, key: str) -> CacheWriteOutcome:
        return cls(key=key)

    @classmethod
    def drop(cls, key: str, reason: DropReason, detail: str | None = None) -> CacheWriteOutcome:
        return cls(key=key, reason=reason, detail=detail)


@dataclass
class SweepReport:
    """Counts from one pass over a store."""

    scanned: int = 0
    expired: int = 0
    corrupt: int = 0

    @property
    def removed(self) -> int:
        return self.expired + self.corrupt

    def merge(self, other: SweepReport) -> SweepReport:
        return SweepReport(
            scanned=self.scanned + other.scanned,
            expired=self.expired + other.expired,
            corrupt=self.corrupt + other.corrupt,
        )
