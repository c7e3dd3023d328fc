"""
location_app.throttle
~~~~~~~~~~~~~~~~~~~~~

Rate-limit reverse-geocoding lookups without losing the freshest position.

Location sources emit fixes every second or so; Nominatim (and the user's
data plan) should see at most one lookup per ``interval``.  The
:class:`UpdateThrottler` therefore

* dispatches a sample **immediately** when the last lookup is at least
  ``interval`` old (or there has been none yet), and otherwise
* parks it as the *pending* sample and arms **one** timer for the rest of
  the window.  Later samples just overwrite the pending one; the timer reads
  whatever is pending when it fires.

::

    Idle ──submit(elapsed ≥ interval)──▶ Idle          (dispatch now)
    Idle ──submit(elapsed < interval)──▶ CoolingDown   (arm timer)
    CoolingDown ──submit──────────────▶ CoolingDown   (replace pending)
    CoolingDown ──timer fires─────────▶ Idle          (dispatch pending)

The resolver itself runs on an executor so ``submit`` never blocks on the
network.  Its outcome goes to ``on_result`` / ``on_error``; a failed lookup
does **not** shorten the cooldown.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from location_app.types import LocationSample, ResolvedPlace

__all__ = ["UpdateThrottler", "ThrottleState", "TimerHandle", "start_thread_timer"]

log = logging.getLogger(__name__)

Resolver = Callable[[LocationSample], Optional[ResolvedPlace]]
ResultCallback = Callable[[Optional[ResolvedPlace]], None]
ErrorCallback = Callable[[BaseException], None]

IDLE = "idle"
COOLING_DOWN = "cooling_down"

# timer fires closer than this to the window end count as on time (float rounding)
_EARLY_FIRE_TOLERANCE = 1e-6


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def start_thread_timer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Default timer factory: a started daemon ``threading.Timer``."""
    timer = threading.Timer(delay, callback)
    timer.name = "UpdateThrottlerTimer"
    timer.daemon = True
    timer.start()
    return timer


@dataclass(slots=True)
class ThrottleState:
    last_dispatch_time: Optional[float] = None
    pending_sample: Optional[LocationSample] = None
    timer: Optional[TimerHandle] = None
    # bumped whenever the armed timer is cancelled; stale fires compare against it
    generation: int = 0


class UpdateThrottler:
    """
    At most one ``resolver`` call per ``interval``; last writer wins.

    Parameters
    ----------
    resolver:
        ``resolver(sample) -> ResolvedPlace | None``; may raise.
    interval:
        Minimum seconds between resolver invocations (measured from start).
    on_result / on_error:
        Completion callbacks, invoked on the executor's thread.
    clock:
        Monotonic time source, ``time.monotonic`` by default.
    timer_factory:
        ``timer_factory(delay, callback) -> handle`` that has already armed
        the timer; the handle only needs ``cancel()``.
    executor:
        Where resolver calls run.  When omitted the throttler owns a
        single-thread pool and shuts it down in :meth:`close`.
    """

    def __init__(
        self,
        resolver: Resolver,
        *,
        interval: float = 60.0,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        clock: Callable[[], float] = time.monotonic,
        timer_factory: TimerFactory = start_thread_timer,
        executor: Optional[Executor] = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")

        self.resolver = resolver
        self.interval = float(interval)
        self.on_result = on_result
        self.on_error = on_error
        self._clock = clock
        self._timer_factory = timer_factory
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="geocode"
        )

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._state = ThrottleState()
        self._closed = False
        self._in_flight = 0
        self.dispatch_count = 0

    # ------------------------------------------------------------------ #
    # Introspection                                                      #
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> str:
        with self._lock:
            return COOLING_DOWN if self._state.timer is not None else IDLE

    @property
    def pending_sample(self) -> Optional[LocationSample]:
        with self._lock:
            return self._state.pending_sample

    @property
    def last_dispatch_time(self) -> Optional[float]:
        with self._lock:
            return self._state.last_dispatch_time

    @property
    def closed(self) -> bool:
        return self._closed

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #
    def submit(self, sample: LocationSample) -> None:
        """Dispatch *sample* now or keep it as the pending one for the window."""
        with self._lock:
            if self._closed:
                log.debug("Ignoring sample %s: throttler closed", sample.coordinates)
                return

            now = self._clock()
            st = self._state
            elapsed = self.interval if st.last_dispatch_time is None else now - st.last_dispatch_time

            if elapsed >= self.interval:
                self._cancel_timer_locked()
                st.pending_sample = None
                self._mark_dispatched_locked(now)
                dispatch: Optional[LocationSample] = sample
            else:
                st.pending_sample = sample
                if st.timer is None:
                    self._arm_timer_locked(self.interval - elapsed)
                dispatch = None

        if dispatch is not None:
            self._dispatch(dispatch)

    def close(self) -> None:
        """Cancel the armed timer, drop the pending sample and refuse new input."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._cancel_timer_locked()
            self._state.pending_sample = None
            self._idle.notify_all()

        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
        log.debug("Throttler closed after %d dispatches", self.dispatch_count)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Block until no timer is armed and no lookup is running.

        Returns ``False`` if *timeout* expired first.
        """
        with self._idle:
            return self._idle.wait_for(
                lambda: self._state.timer is None and self._in_flight == 0,
                timeout,
            )

    def __enter__(self) -> "UpdateThrottler":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Timer handling                                                     #
    # ------------------------------------------------------------------ #
    def _arm_timer_locked(self, delay: float) -> None:
        generation = self._state.generation
        log.debug("Deferring lookup by %.2fs", delay)
        self._state.timer = self._timer_factory(delay, lambda: self._on_timer(generation))

    def _cancel_timer_locked(self) -> None:
        st = self._state
        if st.timer is not None:
            st.timer.cancel()
            st.timer = None
        st.generation += 1

    def _on_timer(self, generation: int) -> None:
        with self._lock:
            st = self._state
            if self._closed or generation != st.generation:
                return

            now = self._clock()
            st.timer = None
            self._idle.notify_all()
            remaining = (
                0.0 if st.last_dispatch_time is None
                else self.interval - (now - st.last_dispatch_time)
            )
            if remaining > _EARLY_FIRE_TOLERANCE:
                # woke up early; keep the single timer alive for the remainder
                self._arm_timer_locked(remaining)
                return

            sample, st.pending_sample = st.pending_sample, None
            if sample is None:
                return
            self._mark_dispatched_locked(now)

        self._dispatch(sample)

    def _mark_dispatched_locked(self, now: float) -> None:
        self._state.last_dispatch_time = now
        self._in_flight += 1
        self.dispatch_count += 1

    # ------------------------------------------------------------------ #
    # Resolver dispatch                                                  #
    # ------------------------------------------------------------------ #
    def _dispatch(self, sample: LocationSample) -> None:
        log.debug("Resolving %.5f, %.5f", sample.latitude, sample.longitude)
        try:
            future = self._executor.submit(self.resolver, sample)
        except RuntimeError as exc:  # executor already shut down
            log.debug("Dropping lookup for %s: %s", sample.coordinates, exc)
            self._lookup_done()
            return
        future.add_done_callback(self._on_resolved)

    def _on_resolved(self, future: "Future[Optional[ResolvedPlace]]") -> None:
        try:
            if future.cancelled():
                return
            exc = future.exception()
            if exc is not None:
                log.warning("Error while trying to get location info: %s", exc)
                if self.on_error is not None:
                    self.on_error(exc)
            elif self.on_result is not None:
                self.on_result(future.result())
        except Exception:  # pylint: disable=broad-except
            log.exception("Throttler callback failed")
        finally:
            self._lookup_done()

    def _lookup_done(self) -> None:
        with self._idle:
            self._in_flight -= 1
            self._idle.notify_all()
