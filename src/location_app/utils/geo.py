"""
location_app.utils.geo
~~~~~~~~~~~~~~~~~~~~~~

Tiny wrapper around **geopy** that turns a :class:`LocationSample` into a
:class:`ResolvedPlace` (city, ISO country code, street).

The widget needs to tell two outcomes apart, so unlike a plain
"string or None" helper the resolver:

1. returns a ``ResolvedPlace`` when Nominatim knows the spot,
2. returns *None* when the lookup succeeded but found nothing,
3. raises :class:`ResolutionFailure` on network / service / quota errors.

Public API
----------

``GeopyResolver(geocoder=None, *, user_agent=..., timeout=5, language="en")``
    Callable ``resolver(sample) -> ResolvedPlace | None``.

``reverse_geocode(lat: float, lon: float, language="en") -> ResolvedPlace | None``
    Convenience one-shot lookup that swallows failures.

Calls are synchronous; the throttler runs them on a worker thread.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Mapping, Optional

from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

from location_app.types import LocationSample, ResolvedPlace

__all__ = ["GeopyResolver", "ResolutionFailure", "reverse_geocode", "place_from_address"]

_log = logging.getLogger(__name__)

_CITY_KEYS = ("city", "town", "village", "hamlet", "municipality")
_STREET_KEYS = ("road", "pedestrian", "footway", "street")

# 5 decimals ≈ 1.1 m at the equator
_CACHE_PRECISION = 5


class ResolutionFailure(RuntimeError):
    """The reverse-geocoding call failed (network, timeout, quota, …)."""

    def __init__(self, sample: LocationSample, message: str) -> None:
        super().__init__(message)
        self.sample = sample


def place_from_address(address: Mapping[str, Any], display: Optional[str] = None) -> Optional[ResolvedPlace]:
    """
    Map a Nominatim ``addressdetails`` dict onto a :class:`ResolvedPlace`.

    Returns *None* when neither a locality, a country nor a street is present.
    """
    city = next((address[k] for k in _CITY_KEYS if address.get(k)), None)
    street = next((address[k] for k in _STREET_KEYS if address.get(k)), None)
    country_code = address.get("country_code")
    if country_code:
        country_code = str(country_code).upper()

    if not (city or street or country_code):
        return None
    return ResolvedPlace(city=city, country_code=country_code, street=street, address=display)


class GeopyResolver:
    """
    Reverse geocoder backed by OpenStreetMap-Nominatim.

    * **LRU-cached** – a stationary device re-submitting the same fix does
      not hit the network again.
    * Nominatim usage policy allows 1 req / second; the throttler in front of
      this class keeps us far below that.
    """

    def __init__(
        self,
        geocoder: Any = None,
        *,
        user_agent: str = "location-app/0.1",
        timeout: float = 5.0,
        language: str = "en",
        cache_size: int = 1_024,
    ) -> None:
        self._geocoder = geocoder
        self._user_agent = user_agent
        self._timeout = timeout
        self.language = language
        self._lookup = lru_cache(maxsize=cache_size)(self._reverse)

    @classmethod
    def from_settings(cls, settings) -> "GeopyResolver":
        return cls(
            user_agent=settings.geocoder_user_agent,
            timeout=settings.geocoder_timeout,
            language=settings.language,
        )

    @property
    def geocoder(self) -> Any:
        if self._geocoder is None:
            self._geocoder = Nominatim(user_agent=self._user_agent, timeout=self._timeout)
        return self._geocoder

    def __call__(self, sample: LocationSample) -> Optional[ResolvedPlace]:
        key = (
            round(sample.latitude, _CACHE_PRECISION),
            round(sample.longitude, _CACHE_PRECISION),
        )
        try:
            return self._lookup(key)
        except GeopyError as exc:
            raise ResolutionFailure(sample, f"reverse geocoding failed: {exc}") from exc
        except Exception as exc:  # pylint: disable=broad-except
            raise ResolutionFailure(sample, f"unexpected geocoder error: {exc!r}") from exc

    def cache_clear(self) -> None:
        self._lookup.cache_clear()

    # lru_cache does not store raised exceptions, so failures are retried
    def _reverse(self, key: tuple[float, float]) -> Optional[ResolvedPlace]:
        loc = self.geocoder.reverse(
            key,
            language=self.language,
            exactly_one=True,
            addressdetails=True,
            zoom=18,  # building / street resolution
        )
        if loc is None:
            _log.debug("No place found at %s", key)
            return None

        raw = getattr(loc, "raw", None)
        address = raw.get("address", {}) if isinstance(raw, dict) else {}
        return place_from_address(address, getattr(loc, "address", None))


# ---------------------------------------------------------------------------#
# module-level helper                                                         #
# ---------------------------------------------------------------------------#
@lru_cache(maxsize=4)
def _default_resolver(language: str) -> GeopyResolver:
    return GeopyResolver(language=language)


def reverse_geocode(lat: float, lon: float, language: str = "en") -> Optional[ResolvedPlace]:
    """
    Resolve *lat, lon* with a shared default resolver.

    Returns *None* on an empty result **and** on any failure.
    """
    try:
        return _default_resolver(language)(LocationSample(lat, lon))
    except ResolutionFailure as exc:
        _log.debug("Reverse-geocode failed: %s", exc)
        return None
