# UPS Influx - InfluxDB Sink
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Wraps the InfluxDB client: startup health check, conversion of parsed UPS
# records into points, and a bounded-retry blocking write.
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

"""ups_influx.sink

InfluxSink: the metrics sink for parsed UPS status.

Points
- measurement: configurable, `ups_stats` by default
- tags: `ups_name` (the configured name tag, suffixed with `|<id>` when more
  than one UPS is present), `ups_model`, `ups_id`
- fields: `battery_charge_percent` (int), `ac_attached` (bool)

The bucket is given as `database/retention-policy` (or just the database for
the default retention policy), which is how InfluxDB 1.8+ maps its v1 data
model onto the v2 write API. Credentials are passed as a `user:password`
token for the same reason.
"""
from __future__ import annotations

import logging
import time
import warnings
from datetime import datetime
from typing import Any, List, Optional, Sequence

from influxdb_client import InfluxDBClient, Point, WritePrecision
from influxdb_client.client.write_api import SYNCHRONOUS

from .parser import ParsedUPS

log = logging.getLogger(__name__)

DEFAULT_MEASUREMENT = "ups_stats"
WRITE_ATTEMPTS = 2
RETRY_DELAY = 0.1

# the v1 compatibility API ignores the organization, but the client insists on one
V1_ORG = "-"


class SinkError(RuntimeError):
    """Base class for InfluxDB sink failures."""


class SinkUnavailableError(SinkError):
    """The server could not be reached or did not pass its health check."""


class SinkWriteError(SinkError):
    """A batch of points could not be written after all attempts."""


def name_tag_for(name_tag: str, ups: ParsedUPS, unit_count: int) -> str:
    if unit_count > 1:
        return f"{name_tag}|{ups.id}"
    return name_tag


class InfluxSink:
    """Write parsed UPS status to InfluxDB.

    The client is created by `connect` in normal use; tests hand in a mock.
    """

    def __init__(self, client: Any, bucket: str, measurement: str = DEFAULT_MEASUREMENT,
                 write_attempts: int = WRITE_ATTEMPTS, retry_delay: float = RETRY_DELAY):
        if write_attempts < 1:
            raise ValueError("write_attempts must be >= 1")
        self.bucket = bucket
        self.measurement = measurement
        self._client = client
        self._write_api = client.write_api(write_options=SYNCHRONOUS)
        self._write_attempts = write_attempts
        self._retry_delay = retry_delay

    @classmethod
    def connect(cls, server: str, bucket: str, username: str = "", password: str = "",
                measurement: str = DEFAULT_MEASUREMENT, timeout: float = 3.0) -> "InfluxSink":
        token = ""
        if username or password:
            token = f"{username}:{password}"
        client = InfluxDBClient(url=server, token=token, org=V1_ORG, timeout=int(timeout * 1000))
        log.debug("created InfluxDB client for %s (bucket %s)", server, bucket)
        return cls(client, bucket, measurement=measurement)

    def check_health(self) -> None:
        """Raise SinkUnavailableError unless the server reports status `pass`."""
        try:
            # health() is deprecated in favour of ping(), which reports no status or message
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", DeprecationWarning)
                health = self._client.health()
        except Exception as exc:
            raise SinkUnavailableError(f"failed to check InfluxDB health: {exc}") from exc
        status = getattr(health, "status", None)
        if status != "pass":
            message = getattr(health, "message", None)
            raise SinkUnavailableError(
                f"InfluxDB did not pass health check: status {status}; message '{message}'")
        log.info("InfluxDB health check passed")

    def build_points(self, units: Sequence[ParsedUPS], name_tag: str, at_time: datetime) -> List[Point]:
        points = []
        for ups in units:
            point = (
                Point(self.measurement)
                .tag("ups_name", name_tag_for(name_tag, ups, len(units)))
                .tag("ups_model", ups.model)
                .tag("ups_id", ups.id)
                .field("battery_charge_percent", int(ups.battery_charge_percent))
                .field("ac_attached", bool(ups.ac_attached))
                .time(at_time, WritePrecision.NS)
            )
            points.append(point)
        return points

    def write(self, points: Sequence[Point]) -> None:
        """Write points, retrying immediately after a short delay.

        Raises SinkWriteError with the last error once every attempt failed.
        """
        last_exc: Optional[Exception] = None
        for attempt in range(1, self._write_attempts + 1):
            try:
                self._write_api.write(bucket=self.bucket, org=V1_ORG, record=list(points))
                return
            except Exception as exc:
                last_exc = exc
                log.debug("InfluxDB write attempt %d/%d failed: %s", attempt, self._write_attempts, exc)
            if attempt < self._write_attempts:
                time.sleep(self._retry_delay)
        raise SinkWriteError(f"failed to write to influx: {last_exc}") from last_exc

    def close(self) -> None:
        try:
            self._write_api.close()
        finally:
            self._client.close()
