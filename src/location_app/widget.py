"""
location_app.widget
~~~~~~~~~~~~~~~~~~~

Headless presentation model of the location widget.

The host shell renders the map and lays the labels out; this class only
keeps the *state* the shell draws from:

* the map region centred on the latest fix,
* the city / street labels filled from reverse geocoding,
* the view mode and what it implies (visible elements, interactivity).

Label updates come in on the geocoder's worker thread, so they are applied
under a lock and announced through ``on_change``.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from location_app.config import LocationSettings
from location_app.manager import LocationManager
from location_app.types import UNKNOWN_CITY, LocationSample, MapRegion, ResolvedPlace, ViewMode

__all__ = ["LocationWidget", "elements_for"]

log = logging.getLogger(__name__)

APP_NAME = "Location"
APP_ICON_NAME = "mappin.and.ellipse"
TITLE_TEXT = "Your location:"

_BASE_ELEMENTS = ("map", "city_label", "address_label")
_FULLSCREEN_EXTRAS = ("dismiss_button", "title_label", "blur_background")


def elements_for(mode: ViewMode) -> tuple[str, ...]:
    """Elements on screen in *mode*; fullscreen adds the title card and close button."""
    if mode is ViewMode.FULLSCREEN:
        return _BASE_ELEMENTS + _FULLSCREEN_EXTRAS
    return _BASE_ELEMENTS


class LocationWidget:
    app_name = APP_NAME
    app_icon_name = APP_ICON_NAME

    def __init__(
        self,
        view_mode: str | ViewMode = "compact",
        *,
        manager: Optional[LocationManager] = None,
        settings: Optional[LocationSettings] = None,
        on_change: Optional[Callable[["LocationWidget"], None]] = None,
    ) -> None:
        self.settings = settings or (manager.settings if manager else LocationSettings())
        self.on_change = on_change

        self.title_text = TITLE_TEXT
        self.city_text = UNKNOWN_CITY
        self.address_text = ""
        self.region: Optional[MapRegion] = None
        self.dismissed = False

        self._lock = threading.Lock()
        self._mode: Optional[ViewMode] = None
        self.view_mode = view_mode

        self.manager = manager or LocationManager(settings=self.settings)
        self.manager.delegate = self

    # ------------------------------------------------------------------ #
    # View mode                                                          #
    # ------------------------------------------------------------------ #
    @property
    def view_mode(self) -> Optional[ViewMode]:
        return self._mode

    @view_mode.setter
    def view_mode(self, value: str | ViewMode) -> None:
        mode = ViewMode.parse(value)
        if mode is None:
            log.warning("Ignoring unknown view mode %r", value)
            return
        self._mode = mode

    @property
    def interaction_enabled(self) -> bool:
        return self._mode is not None and self._mode is not ViewMode.COMPACT

    @property
    def visible_elements(self) -> tuple[str, ...]:
        return elements_for(self._mode or ViewMode.COMPACT)

    # ------------------------------------------------------------------ #
    # Lifecycle                                                          #
    # ------------------------------------------------------------------ #
    def start(self) -> None:
        self.manager.start_updating_location()

    def dismiss(self) -> None:
        if self.dismissed:
            return
        self.dismissed = True
        self.manager.stop()
        log.debug("Widget dismissed")

    # ------------------------------------------------------------------ #
    # LocationManager delegate                                           #
    # ------------------------------------------------------------------ #
    def did_update_location(self, sample: LocationSample) -> None:
        with self._lock:
            self.region = MapRegion.around(
                sample,
                latitudinal_meters=self.settings.region_latitudinal_meters,
                longitudinal_meters=self.settings.region_longitudinal_meters,
            )

    def did_update_placemark(self, place: Optional[ResolvedPlace]) -> None:
        if self.dismissed:
            return
        with self._lock:
            if place is None:
                self.city_text, self.address_text = UNKNOWN_CITY, ""
            else:
                self.city_text, self.address_text = place.city_label, place.street_label
        if self.on_change is not None:
            self.on_change(self)

    def did_fail_placemark(self, exc: BaseException) -> None:
        # labels keep showing the last known place
        log.debug("Keeping previous labels after lookup failure: %s", exc)

    # ------------------------------------------------------------------ #
    # Rendering                                                          #
    # ------------------------------------------------------------------ #
    def render(self) -> list[str]:
        """Text lines of the visible labels, top to bottom."""
        with self._lock:
            lines = []
            elements = self.visible_elements
            if "title_label" in elements:
                lines.append(self.title_text)
            lines.append(self.city_text)
            if self.address_text:
                lines.append(self.address_text)
            return lines
