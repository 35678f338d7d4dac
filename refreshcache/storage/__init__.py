"""refreshcache.storage

Optional snapshot persistence.
"""

from __future__ import annotations

from refreshcache.core.config import StorageConfig
from refreshcache.core.exceptions import ConfigurationError

from .base import RefreshMeta, Snapshot, Storage
from .encrypted_file import EncryptedFileStorage
from .json_file import JsonFileStorage
from .sqlite import SQLiteStorage


def build_storage(config: StorageConfig) -> Storage | None:
    """Return the adapter named by ``config.backend``, or None for ``"none"``."""

    if config.backend == "none":
        return None
    if config.backend == "json":
        return JsonFileStorage(config.path)
    if config.backend == "encrypted":
        return EncryptedFileStorage(config.path, password=config.password or None)
    if config.backend == "sqlite":
        return SQLiteStorage(config.path)
    raise ConfigurationError(f"Unknown storage backend: {config.backend}")


__all__ = [
    "EncryptedFileStorage",
    "JsonFileStorage",
    "RefreshMeta",
    "SQLiteStorage",
    "Snapshot",
    "Storage",
    "build_storage",
]
