"""Minimal Novu API client."""

import logging
from typing import Any, Optional, Tuple

import requests

from . import __version__
from .config import get_settings
from .exceptions import APIError, NotAuthenticatedError

logger = logging.getLogger(__name__)


class NovuClient:
    """Authenticated calls against the Novu REST API."""

    def __init__(self, api_key: str, api_url: str, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"ApiKey {api_key}",
            "Content-Type": "application/json",
            "User-Agent": f"novu-init@{__version__}",
        })

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = f"{self.api_url}/{path.lstrip('/')}"
        kwargs.setdefault("timeout", get_settings().request_timeout)
        try:
            resp = self._session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise APIError(f"Could not reach {self.api_url}: {e}")

        if resp.status_code >= 400:
            body = _body(resp)
            message = body.get("message") if isinstance(body, dict) else None
            message = message or f"{method} {path} failed"
            if resp.status_code in (401, 403):
                raise NotAuthenticatedError(message, status_code=resp.status_code, body=body)
            raise APIError(message, status_code=resp.status_code, body=body)

        return resp

    def get_environment(self) -> dict:
        """Return the environment the API key belongs to (``identifier``, ``name``, ...)."""
        resp = self._request("GET", "v1/environments/me")
        data = _body(resp)
        if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
            raise APIError("Unexpected response from environments endpoint", status_code=resp.status_code, body=data)
        return data["data"]

    def trigger(self, workflow: str, subscriber_id: str, payload: Optional[dict] = None) -> Tuple[int, Any]:
        """Trigger ``workflow`` for a subscriber. Returns ``(status_code, body)``."""
        logger.info("Triggering %r for subscriber %s", workflow, subscriber_id)
        resp = self._request(
            "POST",
            "v1/events/trigger",
            json={
                "name": workflow,
                "to": {"subscriberId": subscriber_id},
                "payload": payload or {},
            },
        )
        return resp.status_code, _body(resp)


def _body(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text
