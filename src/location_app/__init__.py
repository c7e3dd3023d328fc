"""
location_app
~~~~~~~~~~~~

Public façade for the location widget package.

* Exposes the pieces a host shell wires together:

      >>> from location_app import LocationWidget, LocationManager, get_logger
      >>> widget = LocationWidget("fullscreen")
      >>> widget.manager.handle_locations([LocationSample(48.8584, 2.2945)])

* Provides a defensively-set ``__version__`` (falls back to “0.0.0” when the
  package is run from source).
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version as _pkg_version

try:
    __version__: str = _pkg_version("location-app")
except PackageNotFoundError:  # e.g. running from a git checkout
    __version__ = "0.0.0"

# Convenience re-exports
from .utils.logging import get_logger                     # noqa: E402
from .types import LocationSample, ResolvedPlace, ViewMode  # noqa: E402
from .throttle import UpdateThrottler                      # noqa: E402
from .manager import LocationManager                       # noqa: E402
from .widget import LocationWidget                         # noqa: E402

__all__ = [
    "LocationManager",
    "LocationSample",
    "LocationWidget",
    "ResolvedPlace",
    "UpdateThrottler",
    "ViewMode",
    "get_logger",
    "__version__",
]
