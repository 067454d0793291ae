"""Issue, cache and reuse relay tunnels for local ports."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional
from urllib.parse import urlparse

import requests

from ..config import get_settings
from ..exceptions import APIError, TunnelError, ValidationError
from .tunnel_client import TunnelClient

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Tunnel state owned by the command that runs the pipeline.

    ``relay_urls`` maps a local port to the relay URL last issued for it and
    is persisted to ``cache_file``; ``tunnels`` holds at most one live
    client per local port.
    """

    relay_urls: Dict[int, str] = field(default_factory=dict)
    tunnels: Dict[int, TunnelClient] = field(default_factory=dict)
    cache_file: Optional[Path] = None

    @classmethod
    def load(cls, cache_file: Optional[Path] = None) -> "SessionState":
        """Load the relay URL cache; a missing or unreadable file yields an empty cache."""
        if cache_file is None:
            cache_file = get_settings().tunnel_cache_file
        state = cls(cache_file=cache_file)
        try:
            raw = json.loads(Path(cache_file).read_text())
        except FileNotFoundError:
            return state
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable tunnel cache %s: %s", cache_file, e)
            return state

        if isinstance(raw, dict):
            for port, url in raw.items():
                if str(port).isdigit() and isinstance(url, str):
                    state.relay_urls[int(port)] = url
        return state

    def save(self) -> None:
        if not self.cache_file:
            return
        path = Path(self.cache_file)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps({str(k): v for k, v in self.relay_urls.items()}, indent=2))
        except OSError as e:
            logger.warning("Could not write tunnel cache %s: %s", path, e)

    def remember(self, port: int, relay_url: str) -> None:
        self.relay_urls[port] = relay_url
        self.save()

    def close_port(self, port: int) -> None:
        client = self.tunnels.pop(port, None)
        if client:
            client.close()

    def close(self) -> None:
        """Close every active tunnel."""
        for port in list(self.tunnels):
            self.close_port(port)


def _origin(url) -> str:
    return f"{url.scheme}://{url.netloc}"


def fetch_new_tunnel(
    issuer_url: Optional[str] = None,
    token: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """Ask the tunnel issuer for a fresh relay URL.

    Raises:
        TunnelError: If the issuer is unreachable or returns no URL.
        APIError: If the issuer answers with an error status.
    """
    settings = get_settings()
    issuer_url = issuer_url or settings.tunnel_issuer_url
    token = token or settings.tunnel_issuer_token
    http = session or requests
    try:
        resp = http.post(
            issuer_url,
            headers={
                "accept": "application/json",
                "Content-Type": "application/json",
                "authorization": f"Bearer {token}",
            },
            timeout=settings.request_timeout,
        )
    except requests.RequestException as e:
        raise TunnelError(f"Could not reach tunnel service {issuer_url}: {e}")

    if resp.status_code >= 400:
        raise APIError("Tunnel service rejected the request", status_code=resp.status_code, body=resp.text)

    try:
        url = resp.json().get("url")
    except (ValueError, AttributeError):
        url = None
    if not url:
        raise TunnelError(f"Tunnel service returned no URL: {resp.text[:200]}")

    logger.info("Issued relay URL %s", url)
    return url


def _connect(
    state: SessionState,
    port: int,
    relay_host: str,
    local_origin: str,
    client_factory: Callable[..., TunnelClient],
    **client_kwargs,
) -> TunnelClient:
    """Connect a new client for ``port``, superseding any existing one."""
    state.close_port(port)

    client = client_factory(relay_host, local_origin, **client_kwargs)
    state.tunnels[port] = client
    try:
        client.connect()
    except TunnelError:
        state.tunnels.pop(port, None)
        client.close()
        raise
    return client


def connect_to_new_tunnel(
    state: SessionState,
    local_origin: str,
    client_factory: Callable[..., TunnelClient] = TunnelClient,
    issuer_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """Issue a relay URL, cache it for the local port and connect to it."""
    origin = urlparse(local_origin)
    relay = urlparse(fetch_new_tunnel(issuer_url, session=session))
    state.remember(origin.port, relay.geturl())
    _connect(state, origin.port, relay.netloc, local_origin, client_factory)
    return _origin(relay)


def create_tunnel(
    state: SessionState,
    local_origin: str,
    route: Optional[str] = None,
    client_factory: Callable[..., TunnelClient] = TunnelClient,
    issuer_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """Expose ``local_origin`` through a relay and return the public origin.

    A relay URL cached for the same local port is tried first, with a short
    retry budget (``relay_cached_retries``) since an expired relay never
    comes back. A new one is issued only if that reconnect fails.
    """
    settings = get_settings()
    route = route or settings.default_route
    origin = urlparse(local_origin)
    if not origin.port:
        raise ValidationError(f"Local origin must include a port: {local_origin}")

    cached = state.relay_urls.get(origin.port)
    if cached:
        relay = urlparse(cached)
        try:
            client = _connect(
                state,
                origin.port,
                relay.netloc,
                local_origin,
                client_factory,
                max_retries=settings.relay_cached_retries,
            )
        except TunnelError as e:
            logger.info("Cached relay %s unavailable (%s), requesting a new one", relay.netloc, e)
        else:
            if client.is_connected:
                # later reconnects of a live relay get the full budget
                client.max_retries = settings.relay_max_retries
                logger.info("Reusing relay %s%s", _origin(relay), route)
                return _origin(relay)
            logger.info("Cached relay %s did not connect, requesting a new one", relay.netloc)

    tunnel_origin = connect_to_new_tunnel(
        state, local_origin, client_factory=client_factory, issuer_url=issuer_url, session=session
    )
    logger.info("Tunnel ready: %s%s", tunnel_origin, route)
    return tunnel_origin
