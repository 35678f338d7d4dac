"""refreshcache.core.metrics

A tiny metrics surface.

No Prometheus dependency here. Counters back ``CacheStore.stats()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock


@dataclass
class Counter:
    name: str
    _value: float = 0.0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def inc(self, amount: float = 1.0) -> None:
        with self._lock:
            self._value += amount

    @property
    def value(self) -> float:
        with self._lock:
            return float(self._value)


@dataclass
class Gauge:
    name: str
    _value: float = 0.0
    _lock: Lock = field(default_factory=Lock, repr=False)

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    @property
    def value(self) -> float:
        with self._lock:
            return float(self._value)


class MetricsRegistry:
    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: dict[str, Counter] = {}
        self._gauges: dict[str, Gauge] = {}

    def counter(self, name: str) -> Counter:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name=name)
            return self._counters[name]

    def gauge(self, name: str) -> Gauge:
        with self._lock:
            if name not in self._gauges:
                self._gauges[name] = Gauge(name=name)
            return self._gauges[name]

    def snapshot(self) -> dict[str, float]:
        with self._lock:
            data: dict[str, float] = {}
            data.update({f"counter.{k}": v.value for k, v in self._counters.items()})
            data.update({f"gauge.{k}": v.value for k, v in self._gauges.items()})
            return data


class CacheMetrics:
    """Named counters for one cache instance."""

    def __init__(self, registry: MetricsRegistry | None = None) -> None:
        self.registry = registry or MetricsRegistry()
        r = self.registry
        self.hits = r.counter("hits")
        self.misses = r.counter("misses")
        self.expired = r.counter("expired")
        self.get_errors = r.counter("get_errors")
        self.sets = r.counter("sets")
        self.set_errors = r.counter("set_errors")
        self.deletes = r.counter("deletes")
        self.flushes = r.counter("flushes")
        self.refresh_success = r.counter("refresh_success")
        self.refresh_failure = r.counter("refresh_failure")
        self.storage_failure = r.counter("storage_failure")
        self.entries = r.gauge("entries")
        self.refresh_keys = r.gauge("refresh_keys")

    def hit_ratio(self) -> float:
        total = self.hits.value + self.misses.value
        return self.hits.value / total if total else 0.0

    def snapshot(self) -> dict[str, float]:
        data = self.registry.snapshot()
        data["hit_ratio"] = self.hit_ratio()
        return data
