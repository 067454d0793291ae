"""WebSocket client that forwards relay traffic to the local dev server."""

import enum
import json
import logging
import threading
from typing import Optional

import requests
from websockets.exceptions import WebSocketException
from websockets.sync.client import connect as ws_connect

from ..config import get_settings
from ..exceptions import TunnelError

logger = logging.getLogger(__name__)

_CONNECT_ERRORS = (OSError, TimeoutError, WebSocketException)


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


class TunnelClient:
    """Persistent relay connection for one local origin.

    Protocol::

        Relay -> CLI:  {"type": "request", "id": "req-123", "method": "POST", "path": "/api/novu", ...}
        CLI forwards:  HTTP POST <local_origin>/api/novu
        CLI -> Relay:  {"type": "response", "id": "req-123", "status": 200, "body": "..."}

        Relay -> CLI:  {"type": "ping"}  /  CLI -> Relay: {"type": "pong"}

    Each connection attempt is bounded by ``connection_timeout`` seconds.
    Failed attempts are retried ``max_retries`` times (0 retries forever),
    both on ``connect()`` and when an established connection drops.
    """

    def __init__(
        self,
        relay_host: str,
        local_origin: str,
        connection_timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        secure: bool = True,
    ):
        settings = get_settings()
        self.relay_host = relay_host
        self.local_origin = local_origin.rstrip("/")
        self.relay_url = f"{'wss' if secure else 'ws'}://{relay_host}"
        self.connection_timeout = settings.relay_connect_timeout if connection_timeout is None else connection_timeout
        self.max_retries = settings.relay_max_retries if max_retries is None else max_retries
        self.retry_delay = settings.relay_retry_delay if retry_delay is None else retry_delay
        self.state = ConnectionState.DISCONNECTED
        self._ws = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def connect(self) -> None:
        """Open the relay connection and start forwarding.

        Raises:
            TunnelError: If every attempt allowed by the retry policy fails.
        """
        self._stop_event.clear()
        self.state = ConnectionState.CONNECTING
        self._ws = self._open()
        self.state = ConnectionState.CONNECTED

        self._thread = threading.Thread(target=self._forward_loop, daemon=True)
        self._thread.start()
        logger.info("Tunnel connected: %s -> %s", self.relay_host, self.local_origin)

    def close(self) -> None:
        """Close the tunnel connection."""
        self._stop_event.set()

        if self._ws:
            try:
                self._ws.close()
            except _CONNECT_ERRORS as e:
                logger.debug("Error while closing relay socket: %s", e)
            self._ws = None

        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=3)
        self._thread = None
        self.state = ConnectionState.DISCONNECTED

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED and self._ws is not None

    # -----------------------------------------------------------------
    # Connection
    # -----------------------------------------------------------------

    def _open(self):
        """Connect under the retry policy."""
        attempt = 0
        while not self._stop_event.is_set():
            attempt += 1
            try:
                return ws_connect(
                    self.relay_url,
                    open_timeout=self.connection_timeout,
                    close_timeout=2,
                )
            except _CONNECT_ERRORS as e:
                logger.debug("Relay connection attempt %d to %s failed: %s", attempt, self.relay_url, e)
                if self.max_retries and attempt > self.max_retries:
                    self.state = ConnectionState.FAILED
                    raise TunnelError(
                        f"Could not connect to relay {self.relay_host} after {attempt} attempts: {e}"
                    )
                self._stop_event.wait(self.retry_delay)

        self.state = ConnectionState.DISCONNECTED
        raise TunnelError("Tunnel closed while connecting")

    # -----------------------------------------------------------------
    # Forwarding loop
    # -----------------------------------------------------------------

    def _forward_loop(self) -> None:
        """Read relay messages and forward HTTP requests to the local server."""
        while not self._stop_event.is_set():
            ws = self._ws
            if ws is None:
                return
            try:
                raw = ws.recv(timeout=5)
            except TimeoutError:
                continue
            except _CONNECT_ERRORS as e:
                if self._stop_event.is_set():
                    return
                logger.warning("Relay connection lost (%s), reconnecting...", e)
                self.state = ConnectionState.CONNECTING
                try:
                    self._ws = self._open()
                except TunnelError as err:
                    logger.error("%s", err)
                    return
                self.state = ConnectionState.CONNECTED
                continue

            try:
                msg = json.loads(raw)
            except (json.JSONDecodeError, TypeError):
                continue
            if not isinstance(msg, dict):
                continue

            msg_type = msg.get("type")

            if msg_type == "ping":
                self._send({"type": "pong"})

            elif msg_type == "request":
                self._handle_request(msg)

    def _handle_request(self, msg: dict) -> None:
        """Forward an HTTP request to the local server and send the response back."""
        req_id = msg.get("id")
        method = msg.get("method", "GET").upper()
        path = msg.get("path", "/")
        headers = msg.get("headers") or {}
        body = msg.get("body")

        url = f"{self.local_origin}{path}"

        try:
            resp = requests.request(
                method=method,
                url=url,
                headers={k: v for k, v in headers.items() if k.lower() != "host"},
                data=body.encode("utf-8") if isinstance(body, str) else body,
                timeout=30,
            )

            self._send({
                "type": "response",
                "id": req_id,
                "status": resp.status_code,
                "headers": dict(resp.headers),
                "body": resp.text,
            })

        except requests.RequestException as e:
            logger.debug("Forwarding %s %s failed: %s", method, url, e)
            self._send({
                "type": "response",
                "id": req_id,
                "status": 502,
                "body": json.dumps({"error": f"Local forwarding failed: {e}"}),
            })

    def _send(self, msg: dict) -> None:
        """Send a JSON message to the relay."""
        if self._ws:
            try:
                self._ws.send(json.dumps(msg))
            except _CONNECT_ERRORS as e:
                logger.debug("Could not send %s to relay: %s", msg.get("type"), e)
