"""refreshcache: an in-process TTL cache that keeps itself warm.

    from refreshcache import CacheStore

    cache = CacheStore(default_expiration_s=300)
    cache.set("user:1", {"name": "ada"})
    value, found = cache.get("user:1")
"""

from __future__ import annotations

from refreshcache.core import (
    ABSENT,
    ArgumentError,
    CacheConfig,
    CacheError,
    CacheItem,
    ConfigurationError,
    GetError,
    Lookup,
    ManualClock,
    SetError,
    StorageError,
)
from refreshcache.core.cache import CacheStore
from refreshcache.refresh import RefreshScheduler

__all__ = [
    "__version__",
    "ABSENT",
    "ArgumentError",
    "CacheConfig",
    "CacheError",
    "CacheItem",
    "CacheStore",
    "ConfigurationError",
    "GetError",
    "Lookup",
    "ManualClock",
    "RefreshScheduler",
    "SetError",
    "StorageError",
]

__version__ = "1.0.0"
