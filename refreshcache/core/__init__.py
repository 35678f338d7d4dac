"""refreshcache.core

Core primitives.

The store lives in ``refreshcache.core.cache``; everything else here depends on
nothing but the standard library, pydantic and PyYAML.
"""

from .config import CacheConfig, LoggingConfig, StorageConfig
from .exceptions import (
    ArgumentError,
    CacheError,
    ConfigurationError,
    GetError,
    RefreshError,
    SetError,
    StorageError,
)
from .time import Clock, ManualClock, SystemClock, now_ms
from .types import ABSENT, CacheItem, Entry, Lookup, RefreshRegistration

__all__ = [
    "ABSENT",
    "ArgumentError",
    "CacheConfig",
    "CacheError",
    "CacheItem",
    "Clock",
    "ConfigurationError",
    "Entry",
    "GetError",
    "LoggingConfig",
    "Lookup",
    "ManualClock",
    "RefreshError",
    "RefreshRegistration",
    "SetError",
    "StorageConfig",
    "StorageError",
    "SystemClock",
    "now_ms",
]
