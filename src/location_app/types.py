"""
location_app.types
~~~~~~~~~~~~~~~~~~

Plain value objects shared by the throttler, the resolver and the widget.

* :class:`LocationSample` – one position fix pushed by a location source.
* :class:`ResolvedPlace` – what the reverse geocoder made of a sample.
* :class:`MapRegion`     – the visible map window centred on a sample.
* :class:`ViewMode`      – compact / halfscreen / fullscreen presentation.

All of them are frozen; nothing downstream may mutate a sample once the
source has produced it.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional

__all__ = ["LocationSample", "ResolvedPlace", "MapRegion", "ViewMode"]

UNKNOWN_CITY = "Unknown"


@dataclass(frozen=True, slots=True)
class LocationSample:
    latitude: float
    longitude: float
    timestamp: float = field(default_factory=time.monotonic)
    accuracy: Optional[float] = None

    @property
    def coordinates(self) -> tuple[float, float]:
        return self.latitude, self.longitude

    def at(self, timestamp: float) -> "LocationSample":
        """Copy of this sample stamped with *timestamp*."""
        return replace(self, timestamp=timestamp)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, timestamp: float | None = None) -> "LocationSample":
        """
        Build a sample from a loosely typed mapping (CSV row, YAML entry).

        Accepts ``latitude``/``lat`` and ``longitude``/``lon``/``lng`` keys.

        Raises
        ------
        ValueError
            When a coordinate is missing, not numeric or out of range.
        """
        lat = _first(data, "latitude", "lat")
        lon = _first(data, "longitude", "lon", "lng")
        if lat is None or lon is None:
            raise ValueError(f"missing coordinate in {dict(data)!r}")
        try:
            lat_f, lon_f = float(lat), float(lon)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"non-numeric coordinate in {dict(data)!r}") from exc

        if not -90.0 <= lat_f <= 90.0:
            raise ValueError(f"latitude {lat_f} out of range [-90, 90]")
        if not -180.0 <= lon_f <= 180.0:
            raise ValueError(f"longitude {lon_f} out of range [-180, 180]")

        accuracy = data.get("accuracy")
        kwargs: dict[str, Any] = {
            "accuracy": float(accuracy) if accuracy not in (None, "") else None
        }
        if timestamp is not None:
            kwargs["timestamp"] = timestamp
        return cls(lat_f, lon_f, **kwargs)


def _first(data: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


@dataclass(frozen=True, slots=True)
class ResolvedPlace:
    """Reverse-geocoding result; every field may be missing."""

    city: Optional[str] = None
    country_code: Optional[str] = None
    street: Optional[str] = None
    address: Optional[str] = None

    @property
    def city_label(self) -> str:
        """``"Paris, FR"``, ``"Paris"`` or ``"Unknown"`` when no locality is known."""
        city = self.city or UNKNOWN_CITY
        return f"{city}, {self.country_code}" if self.country_code else city

    @property
    def street_label(self) -> str:
        return self.street or ""


@dataclass(frozen=True, slots=True)
class MapRegion:
    latitude: float
    longitude: float
    latitudinal_meters: float = 50.0
    longitudinal_meters: float = 200.0

    @classmethod
    def around(
        cls,
        sample: LocationSample,
        *,
        latitudinal_meters: float = 50.0,
        longitudinal_meters: float = 200.0,
    ) -> "MapRegion":
        return cls(sample.latitude, sample.longitude, latitudinal_meters, longitudinal_meters)


class ViewMode(str, Enum):
    COMPACT = "compact"
    HALFSCREEN = "halfscreen"
    FULLSCREEN = "fullscreen"

    @classmethod
    def parse(cls, value: "str | ViewMode | None") -> Optional["ViewMode"]:
        """Return the matching mode, or *None* for unrecognised input."""
        if isinstance(value, ViewMode):
            return value
        if value is None:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None
