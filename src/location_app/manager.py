"""
location_app.manager
~~~~~~~~~~~~~~~~~~~~

Glue between a push-based :class:`~location_app.sources.LocationSource`,
the :class:`~location_app.throttle.UpdateThrottler` and whatever presents
the result (usually :class:`~location_app.widget.LocationWidget`).

The presentation target is a *delegate* held through a weak reference: the
manager must not keep a dismissed widget alive, and results that arrive for
a delegate that is gone are dropped silently.
"""

from __future__ import annotations

import logging
import weakref
from typing import Any, Callable, Optional, Protocol, Sequence

from location_app.config import LocationSettings
from location_app.throttle import UpdateThrottler
from location_app.types import LocationSample, ResolvedPlace
from location_app.utils.geo import GeopyResolver

__all__ = ["LocationManager", "LocationManagerDelegate"]

log = logging.getLogger(__name__)


class LocationManagerDelegate(Protocol):
    def did_update_location(self, sample: LocationSample) -> None:
        ...

    def did_update_placemark(self, place: Optional[ResolvedPlace]) -> None:
        ...


class LocationManager:
    """Feed location fixes to a delegate and to a throttled reverse geocoder."""

    def __init__(
        self,
        resolver: Optional[Callable[[LocationSample], Optional[ResolvedPlace]]] = None,
        *,
        settings: Optional[LocationSettings] = None,
        source: Any = None,
        throttler_factory: Callable[..., UpdateThrottler] = UpdateThrottler,
    ) -> None:
        self.settings = settings or LocationSettings()
        self.source = source
        self._delegate_ref: Optional[weakref.ReferenceType] = None
        self._stopped = False
        self._updating = False

        self.throttler = throttler_factory(
            resolver or GeopyResolver.from_settings(self.settings),
            interval=self.settings.throttle_interval,
            on_result=self._placemark_resolved,
            on_error=self._placemark_failed,
        )

    # ------------------------------------------------------------------ #
    # Delegate                                                           #
    # ------------------------------------------------------------------ #
    @property
    def delegate(self) -> Optional[LocationManagerDelegate]:
        return self._delegate_ref() if self._delegate_ref is not None else None

    @delegate.setter
    def delegate(self, value: Optional[LocationManagerDelegate]) -> None:
        self._delegate_ref = weakref.ref(value) if value is not None else None

    # ------------------------------------------------------------------ #
    # Source lifecycle                                                   #
    # ------------------------------------------------------------------ #
    def start_updating_location(self) -> None:
        if self._stopped:
            raise RuntimeError("LocationManager has been stopped")
        if self.source is None:
            log.warning("No location source attached – nothing to start")
            return
        if self._updating:
            return
        self._updating = True
        self.source.start(self.handle_locations)

    def stop_updating_location(self) -> None:
        if self.source is not None and self._updating:
            self.source.stop()
        self._updating = False

    def stop(self) -> None:
        """Stop the source and cancel any deferred lookup (teardown)."""
        if self._stopped:
            return
        self.stop_updating_location()
        self._stopped = True
        self.throttler.close()

    @property
    def stopped(self) -> bool:
        return self._stopped

    # ------------------------------------------------------------------ #
    # Inbound samples                                                    #
    # ------------------------------------------------------------------ #
    def handle_locations(self, samples: Sequence[LocationSample] | LocationSample) -> None:
        """Only the newest sample of a batch matters."""
        if isinstance(samples, LocationSample):
            samples = (samples,)
        if not samples or self._stopped:
            return

        sample = samples[-1]
        delegate = self.delegate
        if delegate is not None:
            delegate.did_update_location(sample)
        self.throttler.submit(sample)

    # ------------------------------------------------------------------ #
    # Resolver completions (executor thread)                             #
    # ------------------------------------------------------------------ #
    def _placemark_resolved(self, place: Optional[ResolvedPlace]) -> None:
        delegate = self.delegate
        if self._stopped or delegate is None:
            return
        delegate.did_update_placemark(place)

    def _placemark_failed(self, exc: BaseException) -> None:
        delegate = self.delegate
        if self._stopped or delegate is None:
            return
        on_failure = getattr(delegate, "did_fail_placemark", None)
        if on_failure is not None:
            on_failure(exc)
