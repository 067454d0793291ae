"""Serve package: launch, tunnel, health-check and sync the local bridge."""

from .health import monitor_endpoint_health, tunnel_health_check
from .local_server import DevServer, LaunchState, find_available_port, wait_for_server_ready
from .polling import PollResult, poll_until
from .registrar import SyncOutcome, sync
from .tunnel import SessionState, create_tunnel, fetch_new_tunnel
from .tunnel_client import ConnectionState, TunnelClient

__all__ = [
    "ConnectionState",
    "DevServer",
    "LaunchState",
    "PollResult",
    "SessionState",
    "SyncOutcome",
    "TunnelClient",
    "create_tunnel",
    "fetch_new_tunnel",
    "find_available_port",
    "monitor_endpoint_health",
    "poll_until",
    "sync",
    "tunnel_health_check",
    "wait_for_server_ready",
]
