"""
location_app.cli
~~~~~~~~~~~~~~~~

Command-line interface for the location widget core.

The CLI is a thin wrapper that

1. Boots the global logging system.
2. Parses user options (via **Click**).
3. Wires a :class:`TrackReplaySource` → :class:`LocationManager` →
   :class:`LocationWidget` pipeline and prints every label change.

Typical invocations
-------------------
# Replay a recorded walk ten times faster, one lookup every 60 s
$ locapp replay walk.csv --speed 10

# One-shot lookup
$ locapp resolve 48.8584 2.2945

# Show the effective configuration then quit
$ locapp config

The entry-point name **`locapp`** is registered in *pyproject.toml*.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from location_app import __version__
from location_app.config import LocationSettings, load_config
from location_app.utils.logging import get_logger

_log = logging.getLogger(__name__)


def _settings(config: Optional[Path], **overrides) -> LocationSettings:
    cfg = load_config(config)
    updates = {k: v for k, v in overrides.items() if v is not None}
    if updates:
        cfg = LocationSettings(**{**cfg.model_dump(), **updates})
    return cfg


def _settings_or_exit(config: Optional[Path], **overrides) -> LocationSettings:
    try:
        return _settings(config, **overrides)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as exc:
        _log.error("Invalid configuration: %s", exc)
        sys.exit(1)


_config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Load settings from an explicit YAML file.",
)


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
def cli() -> None:  # pragma: no cover
    """Location widget command-line tool."""


@cli.command("replay", help="Replay a recorded TRACK (CSV or YAML) through the widget.")
@click.argument("track", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Seconds between reverse-geocode lookups (default from config: 60).",
)
@click.option(
    "--speed",
    type=click.FloatRange(min=0, min_open=True),
    default=1.0,
    show_default=True,
    help="Playback speed multiplier for the recorded gaps.",
)
@click.option(
    "--mode",
    type=click.Choice(["compact", "halfscreen", "fullscreen"], case_sensitive=False),
    default=None,
    help="Widget view mode (default from config).",
)
@_config_option
@click.option("--verbose", "-v", is_flag=True, help="Enable DEBUG-level logging.")
def cmd_replay(
    track: Path,
    interval: float | None,
    speed: float,
    mode: str | None,
    config: Path | None,
    verbose: bool,
) -> None:
    """
    Push every point of TRACK into a live widget and echo the labels it
    shows after each reverse-geocoding result.

    \b
    locapp replay walk.csv --speed 20 --interval 30
    locapp replay commute.yaml --mode fullscreen
    """
    # Lazy imports keep `locapp version` fast
    from location_app.manager import LocationManager
    from location_app.sources import TrackReplaySource, load_track
    from location_app.widget import LocationWidget

    try:
        settings = _settings(config, throttle_interval=interval, view_mode=mode)
        log = get_logger(
            "location_app",
            level=logging.DEBUG if verbose else logging.INFO,
            log_file=settings.log_file,
            force=True,
        )
        points = load_track(track)
    except (ValueError, FileNotFoundError, yaml.YAMLError) as exc:
        _log.error("Cannot start replay: %s", exc)
        sys.exit(1)

    log.info(
        "Replaying %d points from %s (speed=%.1fx, interval=%.0fs)",
        len(points), track, speed, settings.throttle_interval,
    )

    source = TrackReplaySource(points, speed=speed)
    manager = LocationManager(settings=settings, source=source)

    def _echo(widget: LocationWidget) -> None:
        click.echo(" | ".join(widget.render()))

    widget = LocationWidget(settings.view_mode, manager=manager, on_change=_echo)
    try:
        widget.start()
        source.join()
        # last deferred lookup can still be up to one interval away
        manager.throttler.wait_idle(timeout=settings.throttle_interval + settings.geocoder_timeout)
    except KeyboardInterrupt:
        _log.warning("Interrupted by user – exiting.")
        sys.exit(130)
    finally:
        widget.dismiss()

    log.info("Done – %d lookups for %d points.", manager.throttler.dispatch_count, len(points))


@cli.command("resolve", help="Reverse-geocode a single LAT LON pair.")
@click.argument("lat", type=click.FloatRange(-90, 90))
@click.argument("lon", type=click.FloatRange(-180, 180))
@_config_option
def cmd_resolve(lat: float, lon: float, config: Path | None) -> None:
    from location_app.types import LocationSample
    from location_app.utils.geo import GeopyResolver, ResolutionFailure

    settings = _settings_or_exit(config)
    resolver = GeopyResolver.from_settings(settings)
    try:
        place = resolver(LocationSample(lat, lon))
    except ResolutionFailure as exc:
        _log.error("Lookup failed: %s", exc)
        sys.exit(1)

    if place is None:
        click.echo("Unknown")
        return
    click.echo(place.city_label)
    if place.street:
        click.echo(place.street)


@cli.command("config", help="Print the merged configuration.")
@_config_option
def cmd_config(config: Path | None) -> None:
    import pprint

    click.echo(pprint.pformat(_settings_or_exit(config).model_dump()))


@cli.command("version", help="Show package version and exit.")
def cmd_version() -> None:
    click.echo(__version__)


# ---------------------------------------------------------------------------#
# Stand-alone invocation (python -m location_app.cli)                         #
# ---------------------------------------------------------------------------#
def main() -> None:  # pragma: no cover
    """Module-level entry-point so `python -m location_app.cli …` works."""
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
