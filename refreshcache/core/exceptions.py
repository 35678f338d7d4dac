"""refreshcache.core.exceptions

Errors are part of the interface.

Reads report their failures, writes swallow theirs, configuration fails loudly.
"""

from __future__ import annotations


class CacheError(Exception):
    """Base exception for refreshcache."""


class ArgumentError(CacheError):
    """A required argument is missing or has the wrong shape."""


class ConfigurationError(CacheError):
    """Configuration is missing, invalid, or inconsistent."""


class GetError(CacheError):
    """Unexpected failure while reading. Returned, never raised."""


class SetError(CacheError):
    """Unexpected failure while writing. Logged, never raised."""


class StorageError(CacheError):
    """Storage adapter failures: serialize, deserialize, load, save."""


class RefreshError(CacheError):
    """A refresh function failed to produce a value."""
