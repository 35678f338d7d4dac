"""refreshcache.core.types

Lightweight dataclasses for hot-path objects.

Pydantic models own IO boundaries (see ``refreshcache.storage.base``); dataclasses keep
the get/set path lean.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from refreshcache.core.exceptions import GetError

RefreshFn = Callable[[str], Any]


class _Absent:
    """Sentinel for "no value". Never storable."""

    _instance: _Absent | None = None

    def __new__(cls) -> _Absent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT: Any = _Absent()


@dataclass(frozen=True, slots=True)
class Entry:
    """A value and its expiration. One struct, so neither exists without the other."""

    value: Any
    expires_at_ms: int

    def is_live(self, now_ms: int) -> bool:
        return self.expires_at_ms > now_ms


@dataclass(frozen=True, slots=True)
class RefreshRegistration:
    key: str
    expires_at_ms: int
    ttl_ms: int
    refresh_fn: RefreshFn

    def remaining_ms(self, now_ms: int) -> int:
        return self.expires_at_ms - now_ms


@dataclass(frozen=True, slots=True)
class CacheItem:
    """Per-entry TTL override for ``mset``."""

    value: Any
    ttl_s: float | None = None


@dataclass(frozen=True, slots=True)
class Lookup:
    """Result of a point read.

    Unpacks as ``value, found = store.get(key)``. ``error`` is set only when the
    read itself failed; a plain miss has no error.
    """

    value: Any = None
    found: bool = False
    error: GetError | None = None

    def __iter__(self) -> Iterator[Any]:
        return iter((self.value, self.found))

    def __bool__(self) -> bool:
        return self.found


class SchedulerState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"
