"""Tell the Novu platform which public URL serves the bridge endpoint."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from ..config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class SyncOutcome:
    success: bool
    data: Any = None
    error: Any = None


def _body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


def sync(
    bridge_url: str,
    secret_key: str,
    api_url: str,
    session: Optional[requests.Session] = None,
) -> SyncOutcome:
    """POST the bridge URL to ``<api_url>/v1/bridge/sync?source=cli``.

    Single attempt. Missing arguments, error statuses and transport errors
    all come back as ``SyncOutcome(success=False, ...)`` rather than raising.
    """
    if not bridge_url or not secret_key or not api_url:
        logger.error("Missing required parameters for sync")
        return SyncOutcome(success=False, error="Missing required parameters")

    url = f"{api_url.rstrip('/')}/v1/bridge/sync?source=cli"
    http = session or requests

    logger.info("Syncing bridge URL %s with %s", bridge_url, api_url)
    try:
        resp = http.post(
            url,
            json={"bridgeUrl": bridge_url},
            headers={
                "Content-Type": "application/json",
                "Authorization": f"ApiKey {secret_key}",
            },
            timeout=get_settings().request_timeout,
        )
    except requests.RequestException as e:
        logger.error("Sync failed: %s", e)
        return SyncOutcome(success=False, error=str(e))

    data = _body(resp)
    if resp.status_code >= 400:
        logger.error("Sync failed with status %s: %s", resp.status_code, data)
        return SyncOutcome(success=False, error=data)

    return SyncOutcome(success=True, data=data)
