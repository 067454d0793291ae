"""Bridge endpoint health checks through the tunnel."""

import logging
import time
from typing import Callable, Optional

import requests
from rich.console import Console

from .. import __version__
from ..config import get_settings
from .polling import poll_until

logger = logging.getLogger(__name__)

console = Console()


def tunnel_health_check(endpoint: str, session: Optional[requests.Session] = None) -> bool:
    """Return True if ``<endpoint>?action=health-check`` reports ``status: ok``."""
    http = session or requests
    try:
        resp = http.get(
            f"{endpoint}?action=health-check",
            headers={
                "accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": f"novu-init@{__version__}",
            },
            timeout=get_settings().check_timeout,
        )
        data = resp.json()
    except (requests.RequestException, ValueError) as e:
        logger.debug("Health check %s failed: %s", endpoint, e)
        return False

    return isinstance(data, dict) and data.get("status") == "ok"


def _scan_text(endpoint: str, with_hints: bool = False) -> str:
    text = (
        f"Bridge Endpoint scan:\t{endpoint}\n\n"
        "  Ensure your application is configured and running locally."
    )
    if with_hints:
        text += (
            "\n\n"
            "  Starting out? Use our starter [bold]novu-init start[/bold]\n"
            "  Running on a different route or port? Use [bold]--route[/bold] or [bold]--port[/bold]"
        )
    return text


def monitor_endpoint_health(
    origin: str,
    route: str,
    attempts: Optional[int] = None,
    interval: Optional[float] = None,
    hint_after: Optional[int] = None,
    check: Callable[[str], bool] = tunnel_health_check,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Poll the bridge health check until it reports ok or attempts run out.

    After ``hint_after`` failed attempts the spinner also shows remediation
    hints; the attempt counter keeps running.
    """
    settings = get_settings()
    attempts = attempts or settings.health_attempts
    interval = settings.health_interval if interval is None else interval
    hint_after = hint_after or settings.health_hint_after
    endpoint = f"{origin}{route}"

    with console.status(_scan_text(endpoint)) as status:

        def on_attempt(attempt: int, ok: bool) -> None:
            if not ok and attempt == hint_after:
                status.update(_scan_text(endpoint, with_hints=True))

        result = poll_until(lambda: check(endpoint), attempts, interval, on_attempt=on_attempt, sleep=sleep)

    if result.ok:
        console.print(f"  [green]✓[/green] \U0001f309 Endpoint  → {endpoint}")
        return True

    console.print(f"  [red]✗[/red] Failed to establish a healthy connection to {endpoint}")
    return False
