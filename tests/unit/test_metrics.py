from __future__ import annotations

from refreshcache.core.metrics import CacheMetrics, MetricsRegistry


def test_counters_are_per_registry() -> None:
    a, b = MetricsRegistry(), MetricsRegistry()
    a.counter("hits").inc()
    assert a.counter("hits").value == 1
    assert b.counter("hits").value == 0


def test_snapshot_prefixes_names() -> None:
    r = MetricsRegistry()
    r.counter("sets").inc(2)
    r.gauge("entries").set(7)
    assert r.snapshot() == {"counter.sets": 2.0, "gauge.entries": 7.0}


def test_hit_ratio() -> None:
    m = CacheMetrics()
    assert m.hit_ratio() == 0.0
    m.hits.inc(3)
    m.misses.inc()
    assert m.hit_ratio() == 0.75
    assert m.snapshot()["hit_ratio"] == 0.75
