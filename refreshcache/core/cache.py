"""refreshcache.core.cache

In-memory cache with TTL and optional background refresh.

A cache is a lie you tell yourself to go faster.
A TTL is the part where you admit you might be wrong.

Expiration is checked lazily on read. Nothing scans the table except the refresh
scheduler, and it only looks at keys that asked to be kept warm.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from refreshcache.core.config import CacheConfig
from refreshcache.core.exceptions import ArgumentError, GetError, SetError
from refreshcache.core.metrics import CacheMetrics
from refreshcache.core.time import SYSTEM_CLOCK, Clock, seconds_to_ms
from refreshcache.core.types import ABSENT, CacheItem, Entry, Lookup, RefreshFn, RefreshRegistration
from refreshcache.refresh.scheduler import RefreshScheduler
from refreshcache.storage import RefreshMeta, Snapshot, Storage, build_storage

logger = logging.getLogger(__name__)


class CacheStore:
    """Thread-safe TTL cache.

    One ``RLock`` guards the entry table and the refresh-registration table, so a
    read that lazily expires a key can never interleave with a write into a torn
    state.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        storage: Storage | None = None,
        clock: Clock | None = None,
        **overrides: Any,
    ) -> None:
        cfg = (config or CacheConfig()).with_overrides(**overrides)
        self.config = cfg
        self.name = cfg.name
        self.verbose = cfg.verbose
        self.read_only = cfg.read_only
        self.default_expiration_ms = cfg.default_expiration_ms

        self._clock = clock or SYSTEM_CLOCK
        self._lock = threading.RLock()
        self._entries: dict[str, Entry] = {}
        self._refresh: dict[str, RefreshRegistration] = {}
        self.metrics = CacheMetrics()

        self._scheduler: RefreshScheduler | None = None
        if cfg.background_refresh_enabled:
            # Raises ConfigurationError before any thread or file is touched.
            self._scheduler = RefreshScheduler(
                self,
                interval_ms=cfg.background_refresh_interval_ms,
                min_ttl_ms=cfg.background_refresh_min_ttl_ms,
                check_interval=cfg.background_refresh_interval_check,
                workers=cfg.refresh_workers,
                clock=self._clock,
            )

        self._owns_storage = storage is None
        self._storage = storage if storage is not None else build_storage(cfg.storage)
        self._saver: ThreadPoolExecutor | None = None
        self._closed = False
        self._save_pending = False
        if self._storage is not None:
            self._seed(self._storage)

        self._trace(
            "cache_created",
            default_expiration_s=cfg.default_expiration_s,
            read_only=cfg.read_only,
            background_refresh=cfg.background_refresh_enabled,
        )

    # ------------------------------------------------------------------ reads

    def get(self, key: str) -> Lookup:
        """Return ``Lookup(value, found=True)`` while the entry is live.

        An expired entry is dropped from the entry table on the way out. Its refresh
        registration, if any, is kept so the next tick can revive the key.
        """

        self._trace("get_called", key=key)
        try:
            now = self._clock.now_ms()
            with self._lock:
                entry = self._entries.get(key)
                if entry is not None:
                    if entry.is_live(now):
                        self.metrics.hits.inc()
                        return Lookup(value=entry.value, found=True)
                    del self._entries[key]
                    self.metrics.expired.inc()
        except Exception as e:  # noqa: BLE001 - reads report failures instead of raising
            self.metrics.get_errors.inc()
            logger.error("cache_get_failed", extra={"cache": self.name, "key": repr(key), "error": str(e)})
            return Lookup(error=GetError(f"get failed for {key!r}: {type(e).__name__}: {e}"))

        self.metrics.misses.inc()
        return Lookup()

    def mget(self, keys: Iterable[str]) -> dict[str, Any]:
        """Independent point reads. Misses and unreadable keys are simply absent."""

        if keys is None or isinstance(keys, (str, bytes)):
            raise ArgumentError("mget() requires an iterable of keys")
        self._trace("mget_called", keys=keys)
        values: dict[str, Any] = {}
        for key in keys:
            hit = self.get(key)
            if hit.found:
                values[key] = hit.value
        return values

    def get_or_set(
        self,
        key: str,
        factory: Callable[[], Any],
        *,
        ttl_s: float | None = None,
        refresh: RefreshFn | None = None,
    ) -> Any:
        hit = self.get(key)
        if hit.found:
            return hit.value
        value = factory()
        self.set(key, value, ttl_s, refresh)
        return value

    # ----------------------------------------------------------------- writes

    def set(
        self,
        key: str,
        value: Any,
        ttl_s: float | None = None,
        refresh: RefreshFn | None = None,
    ) -> bool:
        """Store ``value`` for ``ttl_s`` seconds (``None``/``0`` means the default).

        Returns True when the write happened or was skipped because the store is
        read-only. Returns False when the write failed; the failure is logged and
        the previous state is kept.

        Raises:
            ArgumentError: empty key, ``ABSENT`` value, bad TTL or non-callable refresh.
        """

        self._validate_key(key, "set")
        if value is ABSENT:
            raise ArgumentError("set() requires a value")
        ttl_ms = self._effective_ttl_ms(ttl_s)
        if refresh is not None and not callable(refresh):
            raise ArgumentError("set() refresh must be callable")

        self._trace("set_called", key=key, ttl_ms=ttl_ms, refresh=refresh is not None)
        if self.read_only:
            return True

        try:
            expires_at = self._clock.now_ms() + ttl_ms
            entry = Entry(value=value, expires_at_ms=expires_at)
            with self._lock:
                self._entries[key] = entry
                if refresh is not None:
                    self._refresh[key] = RefreshRegistration(
                        key=key, expires_at_ms=expires_at, ttl_ms=ttl_ms, refresh_fn=refresh
                    )
        except Exception as e:  # noqa: BLE001 - writes are fire-and-forget
            err = SetError(f"set failed for cache {self.name}: {type(e).__name__}: {e}")
            self.metrics.set_errors.inc()
            logger.error("cache_set_failed", exc_info=True, extra={"cache": self.name, "key": key, "error": str(err)})
            return False

        self.metrics.sets.inc()
        if refresh is not None and self._scheduler is not None:
            self._scheduler.ensure_started()
        self._persist()
        return True

    def mset(self, entries: Mapping[str, Any], ttl_s: float | None = None) -> int:
        """Apply ``set`` per entry. Returns how many entries were written.

        A ``CacheItem`` carries its own TTL; otherwise ``ttl_s`` applies, otherwise
        the default. Any other value is stored as-is, including dicts that happen to
        have ``value``/``ttl_s`` keys: wrap an entry in ``CacheItem`` to give it its
        own TTL. Entries are independent: a bad one is logged and skipped.
        """

        if not isinstance(entries, Mapping):
            raise ArgumentError("mset() requires a mapping of key -> value")
        self._effective_ttl_ms(ttl_s)
        self._trace("mset_called", keys=list(entries))

        applied = 0
        for key, raw in entries.items():
            value, entry_ttl = raw, ttl_s
            if isinstance(raw, CacheItem):
                value = raw.value
                entry_ttl = raw.ttl_s or ttl_s
            try:
                ok = self.set(key, value, entry_ttl)
            except ArgumentError as e:
                logger.warning("cache_mset_entry_skipped", extra={"cache": self.name, "key": repr(key), "error": str(e)})
                continue
            applied += int(ok)
        return applied

    def delete(self, keys: str | Iterable[str]) -> int:
        """Drop values and refresh registrations. Returns the number of keys processed."""

        if keys is None:
            raise ArgumentError("delete() requires a key or a list of keys")
        targets = [keys] if isinstance(keys, str) else list(keys)
        self._trace("delete_called", keys=targets)

        with self._lock:
            for key in targets:
                self._entries.pop(key, None)
                self._refresh.pop(key, None)
        self.metrics.deletes.inc(len(targets))
        self._persist()
        return len(targets)

    def flush(self) -> None:
        self._trace("flush_called")
        with self._lock:
            self._entries.clear()
            self._refresh.clear()
        self.metrics.flushes.inc()
        self._persist()

    # ---------------------------------------------------------------- refresh

    def refresh_registrations(self) -> list[RefreshRegistration]:
        with self._lock:
            return list(self._refresh.values())

    def write_back(self, registration: RefreshRegistration, value: Any) -> bool:
        """Store a refreshed value if its registration is still the current one.

        A key deleted, flushed or re-registered while its refresh was running is
        left alone, and so is every key once the store is closed.
        """

        with self._lock:
            if self._closed or self._refresh.get(registration.key) is not registration:
                return False
            return self.set(registration.key, value, registration.ttl_ms / 1000, registration.refresh_fn)

    @property
    def scheduler(self) -> RefreshScheduler | None:
        return self._scheduler

    # ------------------------------------------------------------- inspection

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key).found

    def stats(self) -> dict[str, float]:
        with self._lock:
            self.metrics.entries.set(len(self._entries))
            self.metrics.refresh_keys.set(len(self._refresh))
        return self.metrics.snapshot()

    def snapshot(self) -> Snapshot:
        with self._lock:
            entries = dict(self._entries)
            registrations = dict(self._refresh)
        return self._build_snapshot(entries, registrations)

    # -------------------------------------------------------------- lifecycle

    def close(self, *, wait: bool = True) -> None:
        """Stop the scheduler and drain pending snapshot writes.

        Refresh calls still running are abandoned, not awaited; whatever they
        return is dropped.
        """

        with self._lock:
            self._closed = True
            saver, self._saver = self._saver, None
        if self._scheduler is not None:
            self._scheduler.stop(wait=wait)
        if saver is not None:
            saver.shutdown(wait=True)
        if self._owns_storage and self._storage is not None:
            close = getattr(self._storage, "close", None)
            if callable(close):
                close()

    def __enter__(self) -> CacheStore:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    # ---------------------------------------------------------------- helpers

    def _effective_ttl_ms(self, ttl_s: float | None) -> int:
        if ttl_s is None:
            return self.default_expiration_ms
        if isinstance(ttl_s, bool) or not isinstance(ttl_s, (int, float)):
            raise ArgumentError(f"ttl_s must be a number of seconds, got {type(ttl_s).__name__}")
        if ttl_s <= 0:
            return self.default_expiration_ms
        return seconds_to_ms(ttl_s)

    @staticmethod
    def _validate_key(key: object, op: str) -> None:
        if not isinstance(key, str) or not key:
            raise ArgumentError(f"{op}() requires a non-empty string key")

    def _trace(self, event: str, **data: Any) -> None:
        if self.verbose:
            logger.debug(event, extra={"cache": self.name, **data})

    @staticmethod
    def _build_snapshot(entries: dict[str, Entry], registrations: dict[str, RefreshRegistration]) -> Snapshot:
        return Snapshot(
            db={k: e.value for k, e in entries.items()},
            expirations={k: e.expires_at_ms for k, e in entries.items()},
            refresh_keys={
                k: RefreshMeta(expires_at_ms=r.expires_at_ms, ttl_ms=r.ttl_ms) for k, r in registrations.items()
            },
        )

    def _seed(self, storage: Storage) -> None:
        try:
            snap = storage.load()
        except Exception as e:  # noqa: BLE001 - storage never fails construction
            self.metrics.storage_failure.inc()
            logger.warning("cache_storage_load_failed", extra={"cache": self.name, "error": str(e)})
            return
        if snap is None:
            return

        seeded = 0
        with self._lock:
            for key, value in snap.db.items():
                expires_at = snap.expirations.get(key)
                if expires_at is None:
                    continue
                self._entries[key] = Entry(value=value, expires_at_ms=int(expires_at))
                seeded += 1
        # Refresh functions are code, not data; their bookkeeping cannot be restored.
        self._trace("cache_seeded", entries=seeded, dropped_refresh_keys=len(snap.refresh_keys))

    def _persist(self) -> None:
        """Schedule a snapshot save unless one is already waiting.

        The pending save reads the tables when it runs, so a burst of writes
        costs one queued task and one copy.
        """

        if self._storage is None:
            return
        with self._lock:
            if self._closed or self._save_pending:
                return
            self._save_pending = True
            if self._saver is None:
                self._saver = ThreadPoolExecutor(max_workers=1, thread_name_prefix="refreshcache-save")
            self._saver.submit(self._save)

    def _save(self) -> None:
        with self._lock:
            self._save_pending = False
            entries = dict(self._entries)
            registrations = dict(self._refresh)
        try:
            self._storage.save(self._build_snapshot(entries, registrations))  # type: ignore[union-attr]
        except Exception as e:  # noqa: BLE001 - persistence is best-effort
            self.metrics.storage_failure.inc()
            logger.warning("cache_storage_save_failed", extra={"cache": self.name, "error": str(e)})
