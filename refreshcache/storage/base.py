"""refreshcache.storage.base

Storage is a capability, never a requirement.

The store calls ``load()`` once at construction and ``save()`` after mutations, on a
background worker. Adapters raise ``StorageError``; the store logs and moves on.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field, ValidationError

from refreshcache.core.exceptions import StorageError


class RefreshMeta(BaseModel):
    """Serializable part of a refresh registration. The callable stays in memory."""

    expires_at_ms: int
    ttl_ms: int


class Snapshot(BaseModel):
    """Full cache state as handed to a storage adapter."""

    db: dict[str, Any] = Field(default_factory=dict)
    expirations: dict[str, int] = Field(default_factory=dict)
    refresh_keys: dict[str, RefreshMeta] = Field(default_factory=dict, alias="refreshKeys")

    model_config = {"populate_by_name": True}

    def to_json(self) -> str:
        try:
            return self.model_dump_json(by_alias=True)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Snapshot is not serializable: {e}") from e

    @classmethod
    def from_json(cls, data: str | bytes) -> Snapshot:
        try:
            return cls.model_validate_json(data)
        except ValidationError as e:
            raise StorageError(f"Corrupted snapshot: {e.error_count()} validation errors") from e


@runtime_checkable
class Storage(Protocol):
    def load(self) -> Snapshot | None: ...

    def save(self, snapshot: Snapshot) -> None: ...
