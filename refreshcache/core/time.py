"""refreshcache.core.time

The only clock surface in the codebase.

Expirations are integer milliseconds since the epoch. Tests inject a ManualClock
instead of sleeping.
"""

from __future__ import annotations

import threading
import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    def now_ms(self) -> int: ...


class SystemClock:
    """Wall clock in epoch milliseconds."""

    def now_ms(self) -> int:
        return int(time.time() * 1000)


class ManualClock:
    """A clock that only moves when told to."""

    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self._now = int(start_ms)
        self._lock = threading.Lock()

    def now_ms(self) -> int:
        with self._lock:
            return self._now

    def advance(self, *, ms: int = 0, seconds: float = 0.0) -> int:
        """Move forward and return the new time."""

        with self._lock:
            self._now += int(ms) + int(seconds * 1000)
            return self._now

    def set(self, now_ms: int) -> None:
        with self._lock:
            self._now = int(now_ms)


SYSTEM_CLOCK = SystemClock()


def now_ms(clock: Clock | None = None) -> int:
    """Return current epoch milliseconds.

    Args:
        clock: Override clock for testing.
    """

    return (clock or SYSTEM_CLOCK).now_ms()


def seconds_to_ms(seconds: float) -> int:
    return int(round(float(seconds) * 1000))
