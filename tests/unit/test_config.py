from __future__ import annotations

from pathlib import Path

import pytest

from refreshcache.core.cache import CacheStore
from refreshcache.core.config import CacheConfig
from refreshcache.core.exceptions import ConfigurationError

REPO_ROOT = Path(__file__).resolve().parents[2]


def test_defaults_match_documented_surface() -> None:
    cfg = CacheConfig()
    assert cfg.name == "cache-module"
    assert cfg.verbose is False
    assert cfg.default_expiration_s == 900
    assert cfg.default_expiration_ms == 900_000
    assert cfg.read_only is False
    assert cfg.background_refresh_enabled is False
    assert cfg.background_refresh_interval_ms == 60_000
    assert cfg.background_refresh_min_ttl_ms == 70_000
    assert cfg.background_refresh_interval_check is True
    assert cfg.storage.backend == "none"


def test_repo_default_yaml_loads() -> None:
    cfg = CacheConfig.from_repo_defaults(REPO_ROOT)
    assert cfg == CacheConfig()


def test_repo_defaults_resolve_from_cwd(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(REPO_ROOT)
    assert CacheConfig.from_repo_defaults() == CacheConfig()


def test_repo_defaults_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        CacheConfig.from_repo_defaults(tmp_path)


def test_config_loads_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "cache.yaml"
    path.write_text(
        "default_expiration_s: 60\nread_only: true\nstorage:\n  backend: sqlite\n  path: snap.db\n"
    )
    cfg = CacheConfig.from_yaml(path)
    assert cfg.default_expiration_ms == 60_000
    assert cfg.read_only is True
    assert cfg.storage.backend == "sqlite"
    assert cfg.storage.path == Path("snap.db")


def test_config_from_yaml_raises_if_missing(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        CacheConfig.from_yaml(tmp_path / "missing.yaml")


def test_config_from_yaml_rejects_invalid_values(tmp_path: Path) -> None:
    path = tmp_path / "cache.yaml"
    path.write_text("default_expiration_s: -1\n")
    with pytest.raises(ConfigurationError):
        CacheConfig.from_yaml(path)


def test_config_from_yaml_rejects_non_mapping(tmp_path: Path) -> None:
    path = tmp_path / "cache.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigurationError):
        CacheConfig.from_yaml(path)


def test_config_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REFRESHCACHE_DEFAULT_EXPIRATION_S", "30")
    monkeypatch.setenv("REFRESHCACHE_STORAGE__BACKEND", "json")
    cfg = CacheConfig()
    assert cfg.default_expiration_s == 30
    assert cfg.storage.backend == "json"


def test_overrides_are_validated() -> None:
    cfg = CacheConfig().with_overrides(verbose=True)
    assert cfg.verbose is True
    with pytest.raises(ConfigurationError):
        CacheConfig().with_overrides(refresh_workers=0)
    with pytest.raises(ConfigurationError):
        CacheConfig().with_overrides(no_such_field=1)


def test_overrides_do_not_mutate_the_original() -> None:
    base = CacheConfig()
    base.with_overrides(default_expiration_s=5)
    assert base.default_expiration_s == 900


@pytest.mark.parametrize(
    "field",
    ["default_expiration_s", "background_refresh_interval_ms", "background_refresh_min_ttl_ms", "refresh_workers"],
)
def test_invalid_values_raise_configuration_error_on_every_path(field: str) -> None:
    with pytest.raises(ConfigurationError):
        CacheConfig(**{field: 0})
    with pytest.raises(ConfigurationError):
        CacheConfig().with_overrides(**{field: 0})
    with pytest.raises(ConfigurationError):
        CacheStore(**{field: 0})


def test_invalid_env_value_raises_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REFRESHCACHE_REFRESH_WORKERS", "-1")
    with pytest.raises(ConfigurationError):
        CacheConfig()
