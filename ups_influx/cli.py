# UPS Influx - Command Line Client
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Reads local UPS status from pmset on a fixed interval and publishes it to
# InfluxDB, optionally reporting liveness to an external heartbeat URL.
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
"""
UPS to InfluxDB client

Polls `pmset -g batt` for attached UPS units and writes one point per present
unit to InfluxDB every poll interval.

Usage:
    ups-influx --influx-server http://192.168.1.1:8086 --influx-bucket ups --ups-nametag office

Credentials may be supplied through INFLUX_USERNAME / INFLUX_PASSWORD instead
of the command line.
"""
from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from typing import List, Optional

from . import __version__
from .heartbeat import HEARTBEAT_INTERVAL, LIVENESS_THRESHOLD, Heartbeat
from .monitor import UPSMonitor
from .sink import DEFAULT_MEASUREMENT, InfluxSink, SinkUnavailableError

log = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    try:
        iv = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if iv <= 0:
        raise argparse.ArgumentTypeError(f"must be > 0, got {iv}")
    return iv


def build_parser() -> argparse.ArgumentParser:
    env = os.environ
    parser = argparse.ArgumentParser(prog="ups-influx", description="Publish pmset UPS status to InfluxDB")
    parser.add_argument("--influx-server", default=env.get("INFLUX_SERVER", ""),
                        help="InfluxDB server, including protocol and port, eg. 'http://192.168.1.1:8086'. Required.")
    parser.add_argument("--influx-username", default=env.get("INFLUX_USERNAME", ""), help="InfluxDB username.")
    parser.add_argument("--influx-password", default=env.get("INFLUX_PASSWORD", ""), help="InfluxDB password.")
    parser.add_argument("--influx-bucket", default=env.get("INFLUX_BUCKET", ""),
                        help="InfluxDB bucket. Supply a string in the form 'database/retention-policy'. "
                             "For the default retention policy, pass just a database name. Required.")
    parser.add_argument("--measurement-name", default=DEFAULT_MEASUREMENT, help="InfluxDB measurement name.")
    parser.add_argument("--ups-nametag", default="", help="Value for the ups_name tag in InfluxDB. Required.")
    parser.add_argument("--poll-interval", default=30, type=_positive_int, help="Polling interval, in seconds (default: 30)")
    parser.add_argument("--influx-timeout", default=3, type=_positive_int,
                        help="Timeout for writing to InfluxDB, in seconds (default: 3)")
    parser.add_argument("--heartbeat-url", default="",
                        help="URL to GET every %ds, if and only if the program has successfully sent UPS "
                             "statistics to Influx in the past %ds." % (HEARTBEAT_INTERVAL.total_seconds(),
                                                                        LIVENESS_THRESHOLD.total_seconds()))
    parser.add_argument("--verbose", action="store_true", help="Enable verbose (DEBUG) logging")
    parser.add_argument("--version", action="version", version=__version__, help="Print version and exit.")
    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.influx_server or not args.influx_bucket:
        parser.error("--influx-bucket and --influx-server must be supplied.")
    if not args.ups_nametag:
        parser.error("--ups-nametag must be supplied.")
    return args


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    log_format = '[%(asctime)s] %(levelname)s: %(message)s'
    logging.basicConfig(level=log_level, format=log_format, datefmt='%H:%M:%S')

    heartbeat = None
    if args.heartbeat_url:
        heartbeat = Heartbeat(args.heartbeat_url)

    sink = InfluxSink.connect(
        args.influx_server,
        args.influx_bucket,
        username=args.influx_username,
        password=args.influx_password,
        measurement=args.measurement_name,
        timeout=args.influx_timeout,
    )
    try:
        sink.check_health()
    except SinkUnavailableError as exc:
        log.error("%s", exc)
        sink.close()
        return 1

    monitor = UPSMonitor(sink, args.ups_nametag, poll_interval=args.poll_interval, heartbeat=heartbeat)

    def signal_handler(sig, frame):
        """Handle termination signals gracefully (SIGINT from Ctrl+C, SIGTERM from kill)"""
        log.info("Shutting down...")
        monitor.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        monitor.run()
    finally:
        sink.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
