from __future__ import annotations

import time
from typing import Protocol


class Clock(Protocol):
    """Wall clock abstraction.

    The engine stamps assessments through this interface rather than calling
    real time directly.
    """

    def now_ms(self) -> int:
        """Return milliseconds since the Unix epoch."""


class SystemClock:
    """Production clock backed by time.time()."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)
