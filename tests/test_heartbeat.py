"""
Unit tests for the heartbeat reporter.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from ups_influx.heartbeat import Heartbeat

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def make(session: MagicMock, on_error=None) -> Heartbeat:
    return Heartbeat("https://hc.example.com/ping/abc", session=session, on_error=on_error, clock=lambda: NOW)


class TestBeat:
    def test_no_ping_before_first_success(self) -> None:
        session = MagicMock()
        hb = make(session)
        assert hb.beat() is False
        session.get.assert_not_called()

    def test_ping_within_liveness_window(self) -> None:
        session = MagicMock()
        hb = make(session)
        hb.alive(NOW - timedelta(seconds=30))
        assert hb.beat() is True
        session.get.assert_called_once_with("https://hc.example.com/ping/abc", timeout=hb.timeout)

    def test_window_boundary_is_inclusive(self) -> None:
        session = MagicMock()
        hb = make(session)
        hb.alive(NOW - timedelta(seconds=120))
        assert hb.beat() is True

    def test_stale_success_suppresses_ping(self) -> None:
        session = MagicMock()
        hb = make(session)
        hb.alive(NOW - timedelta(seconds=121))
        assert hb.beat() is False
        session.get.assert_not_called()

    def test_alive_keeps_latest_time(self) -> None:
        session = MagicMock()
        hb = make(session)
        hb.alive(NOW - timedelta(seconds=10))
        hb.alive(NOW - timedelta(seconds=500))
        assert hb.is_live() is True

    def test_request_error_goes_to_on_error(self) -> None:
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("down")
        errors = []
        hb = make(session, on_error=errors.append)
        hb.alive(NOW)
        assert hb.beat() is False
        assert len(errors) == 1

    def test_http_error_status_goes_to_on_error(self) -> None:
        session = MagicMock()
        session.get.return_value.raise_for_status.side_effect = requests.HTTPError("500")
        errors = []
        hb = make(session, on_error=errors.append)
        hb.alive(NOW)
        assert hb.beat() is False
        assert isinstance(errors[0], requests.HTTPError)


class TestLifecycle:
    def test_start_and_stop(self) -> None:
        session = MagicMock()
        hb = Heartbeat("https://hc.example.com/ping/abc", interval=timedelta(milliseconds=10), session=session)
        hb.alive(datetime.now(timezone.utc))
        hb.start()
        hb.stop()
        assert hb._thread is not None
        assert not hb._thread.is_alive()

    def test_validation(self) -> None:
        with pytest.raises(ValueError):
            Heartbeat("")
        with pytest.raises(ValueError):
            Heartbeat("https://x", interval=timedelta(0))
        with pytest.raises(ValueError):
            Heartbeat("https://x", liveness_threshold=timedelta(seconds=-1))
