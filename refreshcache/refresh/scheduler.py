"""refreshcache.refresh.scheduler

Keep slow-changing values warm so readers rarely pay for a cold miss.

Lifecycle: IDLE -> RUNNING -> STOPPED. The timer thread starts with the first refresh
registration, not with the store.

Each qualifying key becomes one task: refresh_fn(key) -> Future -> write-back through
``CacheStore.set``. No lock is held while user code runs.

Every thread here is a daemon. A refresh_fn that never returns costs one worker; it
never blocks ``stop()``, ``CacheStore.close()`` or interpreter exit.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from refreshcache.core.exceptions import ConfigurationError, RefreshError
from refreshcache.core.time import SYSTEM_CLOCK, Clock
from refreshcache.core.types import RefreshRegistration, SchedulerState

if TYPE_CHECKING:
    from refreshcache.core.cache import CacheStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RefreshOutcome:
    key: str
    refreshed: bool
    error: RefreshError | None = None


class _DaemonPool:
    """Fixed set of daemon workers fed from one queue.

    ``ThreadPoolExecutor`` joins its workers at interpreter exit, which would let a
    hung refresh_fn hold the process open.
    """

    def __init__(self, workers: int, *, name: str) -> None:
        self._queue: queue.SimpleQueue[tuple[Future[Any], Callable[..., Any], tuple[Any, ...]] | None] = (
            queue.SimpleQueue()
        )
        self._threads = [
            threading.Thread(target=self._work, name=f"{name}_{i}", daemon=True) for i in range(workers)
        ]
        for t in self._threads:
            t.start()

    def submit(self, fn: Callable[..., Any], *args: Any) -> Future[Any]:
        fut: Future[Any] = Future()
        self._queue.put((fut, fn, args))
        return fut

    def shutdown(self) -> None:
        """Cancel queued tasks and release idle workers. Running tasks are not waited on."""

        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            if item is not None:
                item[0].cancel()
        for _ in self._threads:
            self._queue.put(None)

    def _work(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                return
            fut, fn, args = item
            if not fut.set_running_or_notify_cancel():
                continue
            try:
                result = fn(*args)
            except BaseException as e:  # noqa: BLE001 - delivered through the Future
                fut.set_exception(e)
            else:
                fut.set_result(result)


class RefreshScheduler:
    """Periodic scan of refresh registrations.

    A registration qualifies when ``expires_at_ms - now < min_ttl_ms``. A key whose
    previous refresh is still running is skipped, so one hung refresh_fn costs one
    worker and nothing else.
    """

    def __init__(
        self,
        store: CacheStore,
        *,
        interval_ms: int,
        min_ttl_ms: int,
        check_interval: bool = True,
        workers: int = 4,
        clock: Clock | None = None,
    ) -> None:
        if check_interval and interval_ms > min_ttl_ms:
            raise ConfigurationError(
                "background refresh interval cannot be greater than the refresh minimum TTL "
                f"({interval_ms}ms > {min_ttl_ms}ms)"
            )
        self._store = store
        self.interval_ms = int(interval_ms)
        self.min_ttl_ms = int(min_ttl_ms)
        self.workers = max(1, int(workers))
        self._clock = clock or SYSTEM_CLOCK

        self._state = SchedulerState.IDLE
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

        self._pool: _DaemonPool | None = None
        self._inflight: dict[str, Future[RefreshOutcome]] = {}
        self._inflight_lock = threading.Lock()
        self.ticks = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    def ensure_started(self) -> bool:
        """IDLE -> RUNNING. Returns True only for the call that started the timer."""

        with self._state_lock:
            if self._state is not SchedulerState.IDLE:
                return False
            self._thread = threading.Thread(target=self._run, name="refreshcache-scheduler", daemon=True)
            self._state = SchedulerState.RUNNING
            self._thread.start()
        logger.debug("refresh_scheduler_started", extra={"interval_ms": self.interval_ms, "min_ttl_ms": self.min_ttl_ms})
        return True

    def stop(self, *, wait: bool = True) -> None:
        """RUNNING/IDLE -> STOPPED.

        ``wait`` joins the timer thread only. Queued refreshes are cancelled; running
        refresh calls are neither interrupted nor waited on, and their results are
        discarded by the closed store.
        """

        with self._state_lock:
            if self._state is SchedulerState.STOPPED:
                return
            self._state = SchedulerState.STOPPED
            self._stop_event.set()
            thread = self._thread
        if thread is not None and wait and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.interval_ms / 1000))
        with self._inflight_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown()

    def _run(self) -> None:
        while not self._stop_event.wait(self.interval_ms / 1000):
            try:
                self.tick()
            except Exception:  # noqa: BLE001 - the timer must survive a bad tick
                logger.exception("refresh_tick_failed")

    def tick(self) -> list[Future[RefreshOutcome]]:
        """Scan once and submit every qualifying key. Returns the submitted tasks."""

        if self._state is SchedulerState.STOPPED:
            return []
        now = self._clock.now_ms()
        due = [r for r in self._store.refresh_registrations() if r.remaining_ms(now) < self.min_ttl_ms]
        submitted: list[Future[RefreshOutcome]] = []
        for registration in due:
            fut = self._submit(registration)
            if fut is not None:
                submitted.append(fut)
        self.ticks += 1
        if submitted:
            logger.debug("refresh_tick", extra={"due": len(due), "submitted": len(submitted)})
        return submitted

    def in_flight(self) -> list[str]:
        with self._inflight_lock:
            return [k for k, f in self._inflight.items() if not f.done()]

    def _submit(self, registration: RefreshRegistration) -> Future[RefreshOutcome] | None:
        with self._inflight_lock:
            if self._state is SchedulerState.STOPPED:
                return None
            running = self._inflight.get(registration.key)
            if running is not None and not running.done():
                logger.debug("refresh_skipped_in_flight", extra={"key": registration.key})
                return None
            if self._pool is None:
                self._pool = _DaemonPool(self.workers, name="refreshcache-refresh")
            fut = self._pool.submit(self._refresh_one, registration)
            self._inflight[registration.key] = fut
        fut.add_done_callback(lambda f, key=registration.key: self._forget(key, f))
        return fut

    def _forget(self, key: str, fut: Future[Any]) -> None:
        with self._inflight_lock:
            if self._inflight.get(key) is fut:
                del self._inflight[key]

    def _refresh_one(self, registration: RefreshRegistration) -> RefreshOutcome:
        key = registration.key
        try:
            value = registration.refresh_fn(key)
            written = self._store.write_back(registration, value)
        except Exception as e:  # noqa: BLE001 - user code isolation boundary
            err = RefreshError(f"refresh failed for {key!r}: {type(e).__name__}: {e}")
            self._store.metrics.refresh_failure.inc()
            logger.warning("refresh_failed", extra={"key": key, "error": str(err)})
            return RefreshOutcome(key=key, refreshed=False, error=err)

        if written:
            self._store.metrics.refresh_success.inc()
        return RefreshOutcome(key=key, refreshed=written)
