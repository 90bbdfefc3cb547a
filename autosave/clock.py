"""
Time sources for subscription accrual.

The ledger only needs ``now() -> int`` (unix seconds, non-decreasing).
``SystemClock`` reads the wall clock; ``ManualClock`` is driven by the caller
and is what tests and simulations use.
"""

import time
from typing import Protocol

from .exceptions import ClockError


class Clock(Protocol):
    """Current-time capability."""

    def now(self) -> int: ...


class SystemClock:
    """Wall clock, clamped so it never reports an earlier time than before."""

    def __init__(self) -> None:
        self._last = 0

    def now(self) -> int:
        current = int(time.time())
        if current < self._last:
            current = self._last
        self._last = current
        return current

    def __repr__(self) -> str:
        return f"<SystemClock last={self._last}>"


class ManualClock:
    """Caller-driven clock."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ClockError(f"Clock cannot start before the epoch: {start}")
        self._now = int(start)

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ClockError(f"Cannot advance clock by a negative amount: {seconds}")
        self._now += int(seconds)
        return self._now

    def set(self, timestamp: int) -> int:
        if timestamp < self._now:
            raise ClockError(
                f"Clock is monotonic: {timestamp} is earlier than {self._now}"
            )
        self._now = int(timestamp)
        return self._now

    def __repr__(self) -> str:
        return f"<ManualClock now={self._now}>"
