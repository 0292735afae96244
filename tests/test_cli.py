"""
Unit tests for the command line entry point.
"""

from __future__ import annotations

import argparse
from unittest.mock import MagicMock, patch

import pytest

from ups_influx import __version__, cli
from ups_influx.sink import SinkUnavailableError

REQUIRED = ["--influx-server", "http://db:8086", "--influx-bucket", "ups", "--ups-nametag", "office"]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("INFLUX_SERVER", "INFLUX_USERNAME", "INFLUX_PASSWORD", "INFLUX_BUCKET"):
        monkeypatch.delenv(name, raising=False)


class TestParseArgs:
    def test_defaults(self) -> None:
        args = cli.parse_args(REQUIRED)
        assert args.measurement_name == "ups_stats"
        assert args.poll_interval == 30
        assert args.influx_timeout == 3
        assert args.heartbeat_url == ""
        assert args.influx_username == ""

    @pytest.mark.parametrize("drop", ["--influx-server", "--influx-bucket", "--ups-nametag"])
    def test_required(self, drop: str) -> None:
        i = REQUIRED.index(drop)
        argv = REQUIRED[:i] + REQUIRED[i + 2:]
        with pytest.raises(SystemExit) as exc:
            cli.parse_args(argv)
        assert exc.value.code != 0

    def test_env_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("INFLUX_SERVER", "http://env:8086")
        monkeypatch.setenv("INFLUX_BUCKET", "envdb/autogen")
        monkeypatch.setenv("INFLUX_PASSWORD", "secret")
        args = cli.parse_args(["--ups-nametag", "office"])
        assert args.influx_server == "http://env:8086"
        assert args.influx_bucket == "envdb/autogen"
        assert args.influx_password == "secret"

    @pytest.mark.parametrize("value", ["0", "-5", "abc"])
    def test_poll_interval_must_be_positive(self, value: str) -> None:
        with pytest.raises(SystemExit):
            cli.parse_args(REQUIRED + ["--poll-interval", value])

    def test_bad_int_error_is_not_chained(self) -> None:
        with pytest.raises(argparse.ArgumentTypeError) as exc:
            cli._positive_int("abc")
        assert exc.value.__cause__ is None
        assert exc.value.__suppress_context__ is True

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc:
            cli.parse_args(["--version"])
        assert exc.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    def test_health_failure_exits_non_zero(self) -> None:
        sink = MagicMock()
        sink.check_health.side_effect = SinkUnavailableError("InfluxDB did not pass health check")
        with patch("ups_influx.cli.InfluxSink.connect", return_value=sink), \
                patch("ups_influx.cli.UPSMonitor") as monitor_cls:
            assert cli.main(REQUIRED) == 1
        monitor_cls.assert_not_called()
        sink.close.assert_called_once()

    def test_wires_collaborators(self) -> None:
        sink = MagicMock()
        argv = REQUIRED + ["--influx-username", "u", "--influx-password", "p", "--measurement-name", "power",
                           "--poll-interval", "10", "--influx-timeout", "5",
                           "--heartbeat-url", "https://hc.example.com/ping/abc"]
        with patch("ups_influx.cli.InfluxSink.connect", return_value=sink) as connect, \
                patch("ups_influx.cli.UPSMonitor") as monitor_cls, \
                patch("ups_influx.cli.signal.signal"):
            assert cli.main(argv) == 0

        connect.assert_called_once_with("http://db:8086", "ups", username="u", password="p",
                                        measurement="power", timeout=5)
        sink.check_health.assert_called_once()
        args, kwargs = monitor_cls.call_args
        assert args == (sink, "office")
        assert kwargs["poll_interval"] == 10
        assert kwargs["heartbeat"].url == "https://hc.example.com/ping/abc"
        monitor_cls.return_value.run.assert_called_once()
        sink.close.assert_called_once()

    def test_no_heartbeat_by_default(self) -> None:
        with patch("ups_influx.cli.InfluxSink.connect", return_value=MagicMock()), \
                patch("ups_influx.cli.UPSMonitor") as monitor_cls, \
                patch("ups_influx.cli.signal.signal"):
            cli.main(REQUIRED)
        assert monitor_cls.call_args.kwargs["heartbeat"] is None

    def test_signal_handler_stops_monitor(self) -> None:
        handlers = {}
        with patch("ups_influx.cli.InfluxSink.connect", return_value=MagicMock()), \
                patch("ups_influx.cli.UPSMonitor") as monitor_cls, \
                patch("ups_influx.cli.signal.signal", side_effect=lambda sig, fn: handlers.setdefault(sig, fn)):
            cli.main(REQUIRED)
        for handler in handlers.values():
            handler(None, None)
        assert monitor_cls.return_value.stop.call_count == len(handlers) == 2
