"""Wall clock used for entry timestamps."""

from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Source of the current time in milliseconds since the epoch."""

    def now_ms(self) -> int: ...


class SystemClock:
    """Clock backed by ``time.time()``."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)
