"""Tests for the bridge endpoint health check and monitor."""

from unittest.mock import MagicMock, Mock, patch

import requests

from novu_init.config import get_settings
from novu_init.serve.health import monitor_endpoint_health, tunnel_health_check


def _session_returning(body):
    session = MagicMock()
    session.get.return_value.json.return_value = body
    return session


# ── tunnel_health_check ───────────────────────────────────────────────────────


def test_ok_status_is_healthy() -> None:
    session = _session_returning({"status": "ok", "discovered": {"workflows": 1}})

    assert tunnel_health_check("https://abc.novu.sh/api/novu", session=session) is True
    assert session.get.call_args.args[0] == "https://abc.novu.sh/api/novu?action=health-check"
    assert session.get.call_args.kwargs["headers"]["accept"] == "application/json"


def test_other_status_is_unhealthy() -> None:
    session = _session_returning({"status": "error"})
    assert tunnel_health_check("https://abc.novu.sh/api/novu", session=session) is False


def test_non_json_body_is_unhealthy() -> None:
    session = MagicMock()
    session.get.return_value.json.side_effect = ValueError("not json")
    assert tunnel_health_check("https://abc.novu.sh/api/novu", session=session) is False


def test_non_object_body_is_unhealthy() -> None:
    session = _session_returning(["ok"])
    assert tunnel_health_check("https://abc.novu.sh/api/novu", session=session) is False


def test_each_check_is_bounded_by_check_timeout(monkeypatch) -> None:
    session = _session_returning({"status": "ok"})
    assert tunnel_health_check("https://abc.novu.sh/api/novu", session=session) is True
    assert session.get.call_args.kwargs["timeout"] == 2

    monkeypatch.setenv("NOVU_INIT_CHECK_TIMEOUT", "0.5")
    get_settings.cache_clear()
    tunnel_health_check("https://abc.novu.sh/api/novu", session=session)
    assert session.get.call_args.kwargs["timeout"] == 0.5


def test_connection_error_is_unhealthy() -> None:
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("tunnel down")
    assert tunnel_health_check("https://abc.novu.sh/api/novu", session=session) is False


# ── monitor_endpoint_health ───────────────────────────────────────────────────


def test_healthy_on_third_attempt() -> None:
    check = Mock(side_effect=[False, False, True])

    with patch("novu_init.serve.health.console"):
        healthy = monitor_endpoint_health(
            "https://abc.novu.sh", "/api/novu", check=check, sleep=lambda s: None
        )

    assert healthy is True
    assert check.call_count == 3
    check.assert_called_with("https://abc.novu.sh/api/novu")


def test_gives_up_after_thirty_attempts() -> None:
    check = Mock(return_value=False)

    with patch("novu_init.serve.health.console"):
        healthy = monitor_endpoint_health(
            "https://abc.novu.sh", "/api/novu", check=check, sleep=lambda s: None
        )

    assert healthy is False
    assert check.call_count == 30


def test_hints_appear_after_tenth_failure_without_resetting() -> None:
    check = Mock(side_effect=[False] * 12 + [True])

    with patch("novu_init.serve.health.console") as console:
        healthy = monitor_endpoint_health(
            "https://abc.novu.sh", "/api/novu", check=check, sleep=lambda s: None
        )

    status = console.status.return_value.__enter__.return_value
    assert healthy is True
    assert check.call_count == 13
    status.update.assert_called_once()
    text = status.update.call_args.args[0]
    assert "--route" in text and "--port" in text
