from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# pytest may run without installing the project; ensure repo root is importable.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from refreshcache.core.cache import CacheStore  # noqa: E402
from refreshcache.core.config import CacheConfig  # noqa: E402
from refreshcache.core.time import ManualClock  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's REFRESHCACHE_* variables out of the tests."""

    import os

    for name in list(os.environ):
        if name.startswith("REFRESHCACHE_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def temp_dir(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture()
def test_config() -> CacheConfig:
    return CacheConfig()


@pytest.fixture()
def store(test_config: CacheConfig, clock: ManualClock) -> Iterator[CacheStore]:
    s = CacheStore(test_config, clock=clock)
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def refresh_store(clock: ManualClock) -> Iterator[CacheStore]:
    """Refresh enabled, timer effectively parked: tests drive ``scheduler.tick()``."""

    s = CacheStore(
        clock=clock,
        background_refresh_enabled=True,
        background_refresh_interval_ms=3_600_000,
        background_refresh_min_ttl_ms=3_600_000,
    )
    try:
        yield s
    finally:
        s.close()
