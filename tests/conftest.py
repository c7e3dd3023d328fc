"""
tests/conftest.py
~~~~~~~~~~~~~~~~~

Deterministic stand-ins for time, timers and the worker pool so the
throttling tests never sleep and never touch the network.
"""

from __future__ import annotations

from concurrent.futures import Executor, Future
from functools import partial
from typing import Callable, List, Optional

import pytest

from location_app.config import LocationSettings
from location_app.manager import LocationManager
from location_app.throttle import UpdateThrottler
from location_app.types import LocationSample, ResolvedPlace


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None], due: float) -> None:
        self.delay = delay
        self.callback = callback
        self.due = due
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def live(self) -> bool:
        return not (self.cancelled or self.fired)


class FakeScheduler:
    """Timer factory that fires only when the test advances the clock."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.timers: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback, self.clock.now + delay)
        self.timers.append(timer)
        return timer

    @property
    def live(self) -> List[FakeTimer]:
        return [t for t in self.timers if t.live]

    def advance_to(self, t: float) -> None:
        while True:
            due = sorted((tm for tm in self.live if tm.due <= t), key=lambda tm: tm.due)
            if not due:
                break
            timer = due[0]
            self.clock.now = timer.due
            timer.fired = True
            timer.callback()
        self.clock.now = t


class InlineExecutor(Executor):
    """Runs every task synchronously in the caller's thread."""

    def submit(self, fn, /, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # noqa: BLE001 - mirrors a pool worker
            future.set_exception(exc)
        return future


class RecordingResolver:
    """Resolver that remembers what it was asked and when."""

    def __init__(self, clock: FakeClock, place: Optional[ResolvedPlace] = None) -> None:
        self.clock = clock
        self.place = place if place is not None else ResolvedPlace("Paris", "FR", "Avenue Anatole France")
        self.calls: List[tuple[float, LocationSample]] = []
        self.fail_with: Optional[BaseException] = None

    def __call__(self, sample: LocationSample) -> Optional[ResolvedPlace]:
        self.calls.append((self.clock(), sample))
        if self.fail_with is not None:
            raise self.fail_with
        return self.place

    @property
    def times(self) -> List[float]:
        return [t for t, _ in self.calls]

    @property
    def samples(self) -> List[LocationSample]:
        return [s for _, s in self.calls]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> FakeScheduler:
    return FakeScheduler(clock)


@pytest.fixture
def resolver(clock: FakeClock) -> RecordingResolver:
    return RecordingResolver(clock)


@pytest.fixture
def throttler_factory(clock: FakeClock, scheduler: FakeScheduler):
    return partial(UpdateThrottler, clock=clock, timer_factory=scheduler, executor=InlineExecutor())


@pytest.fixture
def make_manager(resolver: RecordingResolver, throttler_factory):
    def _make(**settings) -> LocationManager:
        return LocationManager(
            resolver,
            settings=LocationSettings(**settings),
            throttler_factory=throttler_factory,
        )

    return _make
