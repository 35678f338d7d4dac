"""refreshcache.core.config

Two config surfaces only:
1) a YAML file (``CacheConfig.from_yaml``; ``from_repo_defaults`` reads ``config/default.yaml``)
2) environment variables (``REFRESHCACHE_*``, nested with ``__``)

Keyword overrides passed to ``CacheStore`` win over both.

Invalid values raise ``ConfigurationError`` on every path: constructor, env, YAML
and overrides.

Durations follow the caller-facing convention: expirations in seconds, refresh
timings in milliseconds.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from refreshcache.core.exceptions import ConfigurationError


class StorageConfig(BaseModel):
    backend: Literal["none", "json", "encrypted", "sqlite"] = "none"
    path: Path = Path("data/cache.json")
    # Only read by the encrypted backend; falls back to REFRESHCACHE_STORAGE_PASSWORD.
    password: str = ""


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False


class CacheConfig(BaseSettings):
    """Process-wide cache configuration, fixed at store construction."""

    name: str = "cache-module"
    verbose: bool = False
    default_expiration_s: float = 900
    read_only: bool = False

    background_refresh_enabled: bool = False
    background_refresh_interval_ms: int = 60_000
    background_refresh_min_ttl_ms: int = 70_000
    background_refresh_interval_check: bool = True
    refresh_workers: int = 4

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"env_prefix": "REFRESHCACHE_", "env_nested_delimiter": "__"}

    def __init__(self, **values: Any) -> None:
        try:
            super().__init__(**values)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid cache config: {e}") from e

    @field_validator(
        "default_expiration_s",
        "background_refresh_interval_ms",
        "background_refresh_min_ttl_ms",
        "refresh_workers",
    )
    @classmethod
    def must_be_positive(cls, v: float, info) -> float:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be > 0")
        return v

    @property
    def default_expiration_ms(self) -> int:
        return int(round(self.default_expiration_s * 1000))

    def with_overrides(self, **overrides: Any) -> CacheConfig:
        if not overrides:
            return self
        unknown = sorted(set(overrides) - set(type(self).model_fields))
        if unknown:
            raise ConfigurationError(f"Unknown config fields: {', '.join(unknown)}")
        # Round-trip through validation so overrides obey the same rules as env/YAML.
        data = self.model_dump()
        data.update(overrides)
        try:
            return type(self).model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config override: {e}") from e

    @classmethod
    def from_yaml(cls, path: Path) -> CacheConfig:
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")

        raw = yaml.safe_load(path.read_text()) or {}
        if not isinstance(raw, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {path}")
        # Allow either a top-level mapping or one nested under `cache:`.
        if isinstance(raw.get("cache"), dict):
            raw = raw["cache"]
        try:
            return cls(**raw)
        except ConfigurationError as e:
            raise ConfigurationError(f"Invalid config in {path}: {e}") from e

    @classmethod
    def from_repo_defaults(cls, repo_root: Path | None = None) -> CacheConfig:
        root = repo_root or Path.cwd()
        return cls.from_yaml(root / "config" / "default.yaml")
