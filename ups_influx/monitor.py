# UPS Influx - UPS Monitor Loop
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Provides the UPSMonitor class: a fixed-interval loop that samples local UPS
# status, writes it to InfluxDB and feeds the optional heartbeat.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""ups_influx.monitor

UPSMonitor: runs the sample-parse-write cycle once per poll interval.

High-level responsibilities
- `poll_once`: one tick. Read UPS status, build points, write them with the
  sink's bounded retry and, on success, tell the heartbeat we are alive.
- `run`: tick immediately, then on a fixed schedule until `stop` is called.

Error handling
- A failed status query or a failed write is logged and ends that tick only;
  the next tick runs on schedule. Nothing is queued for replay.

Design notes and thread safety
- Ticks never overlap: `run` is a plain loop in the calling thread, so a
  slow pmset call or a slow write just delays the next tick.
- `stop` only sets an Event and may be called from a signal handler or any
  other thread.
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from .heartbeat import Heartbeat
from .parser import ParsedUPS
from .pmset import PowerStatusError, read_ups_status
from .sink import InfluxSink, SinkError

log = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 30.0


class UPSMonitor:
    """Poll local UPS status and forward it to InfluxDB."""

    def __init__(self, sink: InfluxSink, name_tag: str, poll_interval: float = DEFAULT_POLL_INTERVAL,
                 heartbeat: Optional[Heartbeat] = None,
                 reader: Callable[[], List[ParsedUPS]] = read_ups_status):
        if not name_tag:
            raise ValueError("name_tag is required")
        self._poll_interval = float(poll_interval)
        if self._poll_interval <= 0:
            raise ValueError("poll_interval must be > 0")
        self.sink = sink
        self.name_tag = name_tag
        self.heartbeat = heartbeat
        self._reader = reader
        self._stop_event = threading.Event()

    def poll_once(self) -> bool:
        """Run one tick. Returns True if UPS statistics were written."""
        at_time = datetime.now(timezone.utc)

        try:
            units = self._reader()
        except PowerStatusError as exc:
            log.error("%s", exc)
            return False

        if not units:
            log.info("no present UPS found")

        points = self.sink.build_points(units, self.name_tag, at_time)
        try:
            self.sink.write(points)
        except SinkError as exc:
            log.error("%s", exc)
            return False

        log.debug("wrote %d point(s) to InfluxDB", len(points))
        if self.heartbeat is not None:
            self.heartbeat.alive(at_time)
        return True

    def run(self) -> None:
        """Tick now and then every poll interval until stop() is called."""
        if self.heartbeat is not None:
            self.heartbeat.start()
        log.info("polling UPS status every %s second(s)", self._poll_interval)
        next_tick = time.monotonic()
        try:
            while not self._stop_event.is_set():
                self.poll_once()
                next_tick += self._poll_interval
                # a tick that overran its slot starts the next one right away
                delay = max(0.0, next_tick - time.monotonic())
                if delay == 0.0:
                    next_tick = time.monotonic()
                if self._stop_event.wait(delay):
                    break
        finally:
            if self.heartbeat is not None:
                self.heartbeat.stop()
            log.debug("UPSMonitor stopped")

    def stop(self) -> None:
        self._stop_event.set()
