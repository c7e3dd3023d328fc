"""
location_app.config
~~~~~~~~~~~~~~~~~~~

Typed configuration object + tiny loader that merges defaults with values
from an optional **YAML** file.

Typical usage
-------------
>>> from location_app.config import load_config
>>> cfg = load_config()                          # ~/.config/location_app/config.yaml
>>> print(cfg.throttle_interval, cfg.view_mode)

You can also point it at any file:
>>> cfg = load_config("/path/to/my_settings.yaml")
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from location_app.types import ViewMode

__all__ = ["LocationSettings", "load_config", "DEFAULT_CONFIG_PATH"]

DEFAULT_CONFIG_PATH = Path("~/.config/location_app/config.yaml")


# --------------------------------------------------------------------------- #
# Settings model (immutable)                                                  #
# --------------------------------------------------------------------------- #
class LocationSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    # --- Throttling ------------------------------------------------------ #
    throttle_interval: float = Field(
        60.0, gt=0, description="Minimum seconds between reverse-geocode lookups"
    )

    # --- Presentation ---------------------------------------------------- #
    view_mode: str = Field("compact", description="compact, halfscreen or fullscreen")
    region_latitudinal_meters: float = Field(
        50.0, gt=0, description="North-south span of the map region"
    )
    region_longitudinal_meters: float = Field(
        200.0, gt=0, description="East-west span of the map region"
    )

    # --- Reverse geocoding ----------------------------------------------- #
    geocoder_user_agent: str = Field(
        "location-app/0.1", description="User-Agent sent to Nominatim"
    )
    geocoder_timeout: float = Field(5.0, gt=0, description="Per-request timeout (s)")
    language: str = Field("en", description="Preferred language of place names")

    # --- Logging --------------------------------------------------------- #
    log_file: Path | None = Field(None, description="Rotating log file, if any")

    @field_validator("view_mode")
    @classmethod
    def _known_view_mode(cls, v: str) -> str:
        mode = ViewMode.parse(v)
        if mode is None:
            raise ValueError(
                f"unknown view mode {v!r}; expected one of "
                + ", ".join(m.value for m in ViewMode)
            )
        return mode.value

    # Validate paths so that they always expand user (~)
    @field_validator("log_file", mode="before")
    @classmethod
    def _expand_path(cls, v: Path | str | None) -> Path | None:
        return Path(v).expanduser() if v else None


# --------------------------------------------------------------------------- #
# Loader helper                                                               #
# --------------------------------------------------------------------------- #
def load_config(path: str | os.PathLike | None = None) -> LocationSettings:
    """
    Load settings from *path* (YAML). Missing keys fall back to defaults.

    If *path* is ``None`` and ``~/.config/location_app/config.yaml`` exists,
    that file is loaded automatically. Otherwise, purely default settings
    are returned.

    Raises
    ------
    FileNotFoundError
        When *path* is given explicitly but does not exist.
    yaml.YAMLError
        When the file cannot be parsed.
    pydantic.ValidationError
        When a value is out of range.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH.expanduser()
        if not path.exists():
            return LocationSettings()

    yaml_path = Path(path).expanduser()
    if not yaml_path.exists():
        raise FileNotFoundError(yaml_path)

    with yaml_path.open("r", encoding="utf-8") as fh:
        data: Mapping[str, Any] = yaml.safe_load(fh) or {}

    return LocationSettings(**data)
