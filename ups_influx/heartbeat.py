# UPS Influx - Heartbeat Reporter
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Pings an external liveness URL on a fixed interval, but only while the
# program has recently delivered UPS statistics to InfluxDB.
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

"""ups_influx.heartbeat

Heartbeat: a background pinger for uptime monitors (healthchecks.io, Uptime
Kuma push monitors and the like).

- `alive(at_time)` records the time of the last successful write.
- Every `interval` seconds the background thread calls `beat()`, which GETs
  the configured URL iff `alive` was called within `liveness_threshold`.
- Errors never propagate: they go to `on_error` (logged by default) and the
  next interval tries again.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import requests

log = logging.getLogger(__name__)

HEARTBEAT_INTERVAL = timedelta(seconds=60)
LIVENESS_THRESHOLD = timedelta(seconds=120)
REQUEST_TIMEOUT = 10.0


def _log_error(exc: Exception) -> None:
    log.warning("heartbeat error: %s", exc)


class Heartbeat:
    def __init__(self, url: str, interval: timedelta = HEARTBEAT_INTERVAL,
                 liveness_threshold: timedelta = LIVENESS_THRESHOLD,
                 timeout: float = REQUEST_TIMEOUT,
                 session: Optional[requests.Session] = None,
                 on_error: Optional[Callable[[Exception], None]] = None,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        if not url:
            raise ValueError("heartbeat url is required")
        if interval <= timedelta(0):
            raise ValueError("interval must be > 0")
        if liveness_threshold <= timedelta(0):
            raise ValueError("liveness_threshold must be > 0")
        self.url = url
        self.interval = interval
        self.liveness_threshold = liveness_threshold
        self.timeout = timeout
        self._session = session or requests.Session()
        self._on_error = on_error or _log_error
        self._clock = clock

        self._lock = threading.Lock()
        self._last_alive: Optional[datetime] = None

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def alive(self, at_time: datetime) -> None:
        with self._lock:
            if self._last_alive is None or at_time > self._last_alive:
                self._last_alive = at_time

    def is_live(self) -> bool:
        with self._lock:
            last = self._last_alive
        if last is None:
            return False
        return self._clock() - last <= self.liveness_threshold

    def beat(self) -> bool:
        """Send one ping if the program is live. Returns True if a ping went out."""
        if not self.is_live():
            log.debug("no successful write within %s; skipping heartbeat", self.liveness_threshold)
            return False
        try:
            resp = self._session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            self._on_error(exc)
            return False
        log.debug("heartbeat sent to %s", self.url)
        return True

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, daemon=True, name="ups-heartbeat")
        self._thread.start()
        log.debug("heartbeat thread started")

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2.0)
        log.debug("heartbeat stopped")

    def _run(self) -> None:
        wait_s = self.interval.total_seconds()
        # wait() returns True once stop() has been called
        while not self._stop_event.wait(wait_s):
            self.beat()
