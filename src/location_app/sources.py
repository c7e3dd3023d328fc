"""
location_app.sources
~~~~~~~~~~~~~~~~~~~~

Push-based producers of :class:`LocationSample` values.

A real host wires its platform location service to
:meth:`LocationManager.handle_locations`; for development and the CLI we
replay recorded tracks from disk:

* **CSV** – header with ``latitude,longitude`` (``lat``/``lon`` also work)
  and an optional ``offset`` column holding seconds since the start.
* **YAML** – a list of mappings with the same keys.

Rows without an offset are spaced one second after the previous one.
"""

from __future__ import annotations

import csv
import logging
import os
import threading
import time
from pathlib import Path
from typing import Any, Callable, Iterable, List, Protocol, Sequence, Tuple

import yaml

from location_app.types import LocationSample

__all__ = ["LocationSource", "TrackPoint", "TrackReplaySource", "load_track"]

log = logging.getLogger(__name__)

SampleCallback = Callable[[Sequence[LocationSample]], None]
TrackPoint = Tuple[float, LocationSample]


class LocationSource(Protocol):
    def start(self, callback: SampleCallback) -> None:
        ...

    def stop(self) -> None:
        ...


# --------------------------------------------------------------------------- #
# Track files                                                                 #
# --------------------------------------------------------------------------- #
def load_track(path: str | os.PathLike) -> List[TrackPoint]:
    """
    Read a recorded track as ``[(offset_seconds, sample), ...]``.

    Raises
    ------
    FileNotFoundError
        When *path* does not exist.
    ValueError
        On a malformed row (the message names the 1-based row number) or
        offsets that go backwards.
    """
    track_path = Path(path).expanduser()
    if not track_path.exists():
        raise FileNotFoundError(track_path)

    if track_path.suffix.lower() in {".yaml", ".yml"}:
        with track_path.open("r", encoding="utf-8") as fh:
            rows = yaml.safe_load(fh) or []
        if not isinstance(rows, list):
            raise ValueError(f"{track_path}: expected a list of points")
    else:
        with track_path.open("r", encoding="utf-8", newline="") as fh:
            rows = list(csv.DictReader(fh))

    return _to_points(rows, source=track_path.name)


def _to_points(rows: Iterable[Any], *, source: str) -> List[TrackPoint]:
    points: List[TrackPoint] = []
    previous = -1.0
    for number, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            raise ValueError(f"{source}: row {number} is not a mapping")
        try:
            raw_offset = row.get("offset")
            offset = float(raw_offset) if raw_offset not in (None, "") else previous + 1.0
            sample = LocationSample.from_mapping(row, timestamp=offset)
        except ValueError as exc:
            raise ValueError(f"{source}: row {number}: {exc}") from exc
        if offset < previous:
            raise ValueError(f"{source}: row {number}: offset {offset} goes backwards")
        points.append((offset, sample))
        previous = offset
    return points


# --------------------------------------------------------------------------- #
# Replay source                                                               #
# --------------------------------------------------------------------------- #
class TrackReplaySource:
    """
    Replay a recorded track on a background thread.

    The recorded gaps are divided by *speed* (``speed=10`` plays a
    ten-minute walk in one minute).  Samples are re-stamped with the
    replay's own monotonic clock so the throttler sees live timestamps.
    """

    def __init__(
        self,
        points: Sequence[TrackPoint],
        *,
        speed: float = 1.0,
        sleep: Callable[[float], Any] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if speed <= 0:
            raise ValueError(f"speed must be positive, got {speed!r}")
        self.points = list(points)
        self.speed = speed
        self._clock = clock
        self._stop = threading.Event()
        self._sleep = sleep or self._stop.wait
        self._thread: threading.Thread | None = None
        self.emitted = 0

    def start(self, callback: SampleCallback) -> None:
        if self._thread is not None:
            raise RuntimeError("replay already started")
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, args=(callback,), name="TrackReplay", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the replay to finish; ``True`` if it did."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self, callback: SampleCallback) -> None:
        previous: float | None = None
        for offset, sample in self.points:
            if previous is not None:
                self._sleep((offset - previous) / self.speed)
            if self._stop.is_set():
                break
            previous = offset
            try:
                callback([sample.at(self._clock())])
            except Exception:  # pylint: disable=broad-except
                log.exception("Location callback failed")
            self.emitted += 1
        log.debug("Replay finished after %d of %d points", self.emitted, len(self.points))
