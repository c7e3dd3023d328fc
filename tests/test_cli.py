"""
tests/test_cli.py
~~~~~~~~~~~~~~~~~

Drives ``locapp`` through Click's ``CliRunner``.  The Nominatim lookup is
patched out so no test reaches the network; the replay test runs the real
timer + thread pool with a tiny interval.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from click.testing import CliRunner
from geopy.exc import GeocoderUnavailable

from location_app import __version__
from location_app.cli import cli
from location_app.types import ResolvedPlace
from location_app.utils import logging as app_logging
from location_app.utils.geo import GeopyResolver


@pytest.fixture
def lookups(monkeypatch: pytest.MonkeyPatch):
    calls = []

    def fake_reverse(self, key):
        calls.append(key)
        return ResolvedPlace("Oslo", "NO", "Karl Johans gate")

    monkeypatch.setattr(GeopyResolver, "_reverse", fake_reverse)
    return calls


@pytest.fixture
def fresh_logging():
    app_logging.reset_logging()
    yield
    app_logging.reset_logging()
    logging.getLogger("location_app").setLevel(logging.NOTSET)


def test_version() -> None:
    result = CliRunner().invoke(cli, ["version"])

    assert result.exit_code == 0
    assert result.output.strip() == __version__


def test_config_shows_merged_settings(tmp_path: Path) -> None:
    cfg = tmp_path / "config.yaml"
    cfg.write_text("throttle_interval: 12\n")

    result = CliRunner().invoke(cli, ["config", "-c", str(cfg)])

    assert result.exit_code == 0
    assert "'throttle_interval': 12.0" in result.output


def test_resolve_prints_labels(lookups) -> None:
    result = CliRunner().invoke(cli, ["resolve", "59.9133", "10.7389"])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines() == ["Oslo, NO", "Karl Johans gate"]
    assert lookups == [(59.9133, 10.7389)]


def test_resolve_failure_exits_nonzero(monkeypatch: pytest.MonkeyPatch) -> None:
    def unavailable(self, key):
        raise GeocoderUnavailable("offline")

    monkeypatch.setattr(GeopyResolver, "_reverse", unavailable)

    result = CliRunner().invoke(cli, ["resolve", "1", "1"])

    assert result.exit_code == 1


def test_resolve_rejects_out_of_range() -> None:
    result = CliRunner().invoke(cli, ["resolve", "--", "-91", "0"])

    assert result.exit_code == 2


def test_replay_throttles_lookups(tmp_path: Path, lookups) -> None:
    track = tmp_path / "walk.csv"
    track.write_text(
        "latitude,longitude,offset\n"
        "59.9100,10.7500,0\n"
        "59.9110,10.7510,1\n"
        "59.9120,10.7520,2\n"
    )

    result = CliRunner().invoke(
        cli,
        ["replay", str(track), "--interval", "0.2", "--speed", "100", "--mode", "fullscreen"],
    )

    assert result.exit_code == 0, result.output
    # first point immediately, the last one after the cooldown
    assert lookups == [(59.91, 10.75), (59.912, 10.752)]
    assert result.output.count("Your location: | Oslo, NO | Karl Johans gate") == 2


def test_replay_bad_track_exits_nonzero(tmp_path: Path) -> None:
    track = tmp_path / "walk.csv"
    track.write_text("latitude,longitude\n999,0\n")

    result = CliRunner().invoke(cli, ["replay", str(track)])

    assert result.exit_code == 1


def test_config_rejects_invalid_values(tmp_path: Path) -> None:
    cfg = tmp_path / "config.yaml"
    cfg.write_text("throttle_interval: 0\n")

    result = CliRunner().invoke(cli, ["config", "-c", str(cfg)])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)


def test_resolve_rejects_invalid_config(tmp_path: Path, lookups) -> None:
    cfg = tmp_path / "config.yaml"
    cfg.write_text("view_mode: sideways\n")

    result = CliRunner().invoke(cli, ["resolve", "-c", str(cfg), "1", "1"])

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert lookups == []


@pytest.mark.parametrize("speed", ["0", "-2"])
def test_replay_rejects_non_positive_speed(tmp_path: Path, speed: str) -> None:
    track = tmp_path / "walk.csv"
    track.write_text("latitude,longitude\n59.91,10.75\n")

    result = CliRunner().invoke(cli, ["replay", str(track), "--speed", speed])

    assert result.exit_code == 2
    assert "--speed" in result.output


def test_replay_verbose_writes_debug_to_configured_log_file(
    tmp_path: Path, lookups, fresh_logging
) -> None:
    # logging already set up elsewhere must not swallow the command's own setup
    app_logging.get_logger("location_app.elsewhere")

    log_file = tmp_path / "logs" / "replay.log"
    cfg = tmp_path / "config.yaml"
    cfg.write_text(f"log_file: {log_file}\n")
    track = tmp_path / "walk.csv"
    track.write_text("latitude,longitude,offset\n59.9100,10.7500,0\n59.9110,10.7510,1\n")

    result = CliRunner().invoke(
        cli,
        ["replay", str(track), "-c", str(cfg), "--interval", "0.1", "--speed", "100", "-v"],
    )

    assert result.exit_code == 0, result.output
    text = log_file.read_text(encoding="utf-8")
    assert "Resolving 59.91000, 10.75000" in text
    assert "DEBUG" in text
