# UPS Influx - pmset UPS to InfluxDB Bridge
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# This package samples UPS status reported by macOS `pmset`, converts it into
# structured records and writes them to InfluxDB on a fixed interval.
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

"""UPS Influx package

This package forwards local UPS status to InfluxDB. It exposes:

- `parse_report`, `parse_status_line`, `ParsedUPS`: decoding of the
  `pmset -g batt` text report into typed records.
- `read_ups_status`: run pmset and parse its output.
- `InfluxSink`: health check, point construction and retried writes.
- `Heartbeat`: optional liveness pings gated on recent successful writes.
- `UPSMonitor`: the fixed-interval sample-parse-write loop.
"""

__version__ = "0.1.0"

from .parser import LineError, LineParseError, ParsedUPS, ParseResult, parse_report, parse_status_line
from .pmset import PowerStatusError, read_pmset, read_ups_status
from .sink import InfluxSink, SinkError, SinkUnavailableError, SinkWriteError
from .heartbeat import Heartbeat
from .monitor import UPSMonitor

__all__ = [
    "LineError",
    "LineParseError",
    "ParsedUPS",
    "ParseResult",
    "parse_report",
    "parse_status_line",
    "PowerStatusError",
    "read_pmset",
    "read_ups_status",
    "InfluxSink",
    "SinkError",
    "SinkUnavailableError",
    "SinkWriteError",
    "Heartbeat",
    "UPSMonitor",
]
