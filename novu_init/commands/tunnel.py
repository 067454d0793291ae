"""Expose a running local app and register it as the Novu bridge."""

import signal
import threading
from typing import Optional

import click
from rich.console import Console

from ..config import REGIONS, api_url_for, get_settings
from ..exceptions import APIError, TunnelError, ValidationError
from ..serve.health import monitor_endpoint_health
from ..serve.local_server import DevServer, wait_for_server_ready
from ..serve.registrar import SyncOutcome, sync
from ..serve.tunnel import SessionState, create_tunnel
from .sync import print_sync_outcome

console = Console()


def install_interrupt_handler(session: SessionState, server: Optional[DevServer] = None) -> None:
    """On Ctrl-C, close every tunnel (and the dev server) before exiting."""

    def handle(signum, frame):
        console.print("\n[yellow]Closing Tunnel...[/yellow]")
        session.close()
        if server:
            server.stop()
        raise SystemExit(0)

    signal.signal(signal.SIGINT, handle)


def expose_and_sync(
    session: SessionState,
    port: int,
    route: str,
    api_key: str,
    api_url: str,
) -> Optional[SyncOutcome]:
    """Tunnel ``localhost:<port>``, wait for the bridge to be healthy, then sync.

    Returns None when the bridge never became healthy.

    Raises:
        TunnelError, APIError: If no tunnel could be established.
    """
    local_origin = f"http://localhost:{port}"

    with console.status("[dim]Creating a development local tunnel...[/dim]"):
        tunnel_origin = create_tunnel(session, local_origin, route)
    console.print(f"  [green]✓[/green] \U0001f6e3️  Tunnel    → {tunnel_origin}{route}")

    console.print("\n[yellow]You can also access your app via the public URL above.[/yellow]")
    console.print(f"[cyan]Tunnel URL:[/cyan] {tunnel_origin}")
    console.print(f"[cyan]Novu API Key (first 10 characters):[/cyan] {api_key[:10]}...")

    if not monitor_endpoint_health(tunnel_origin, route):
        console.print("[yellow]Skipping sync: the bridge endpoint is not healthy.[/yellow]")
        return None

    bridge_url = f"{tunnel_origin}{route}"
    console.print("[cyan]Syncing with Novu...[/cyan]")
    console.print(f"[dim]Bridge URL: {bridge_url}[/dim]")
    console.print(f"[dim]API URL: {api_url}[/dim]")
    with console.status("[dim]Syncing...[/dim]"):
        outcome = sync(bridge_url, api_key, api_url)
    print_sync_outcome(outcome)
    return outcome


@click.command("tunnel")
@click.option("--port", "-p", type=int, default=lambda: get_settings().default_port, show_default="4000", help="Local port your app listens on")
@click.option("--route", "-r", default=lambda: get_settings().default_route, show_default="/api/novu", help="Bridge endpoint route")
@click.option("--api-key", "-k", envvar="NOVU_SECRET_KEY", help="Novu API key (defaults to $NOVU_SECRET_KEY)")
@click.option("--region", type=click.Choice(REGIONS, case_sensitive=False), default="US", show_default=True, help="Novu region")
def tunnel_command(port: int, route: str, api_key: str, region: str):
    """Expose an app that is already running and sync it with Novu.

    \b
    Examples:
      novu-init tunnel
      novu-init tunnel --port 3000 --route /api/novu
    """
    if not route.startswith("/"):
        raise click.BadParameter("must start with '/'", param_hint="--route")
    if not api_key:
        api_key = click.prompt("Novu API Key", hide_input=True).strip()

    if not wait_for_server_ready(port, attempts=3):
        console.print(f"[yellow]Nothing answered on http://localhost:{port} yet. Is your app running?[/yellow]")

    session = SessionState.load()
    install_interrupt_handler(session)

    try:
        outcome = expose_and_sync(session, port, route, api_key, api_url_for(region))
        if outcome is None or not outcome.success:
            console.print("[yellow]Bridge is not synced. You may need to configure it in the Novu dashboard.[/yellow]")

        console.print("\n[dim]Tunnel is open. Press Ctrl+C to close it.[/dim]")
        threading.Event().wait()

    except (TunnelError, ValidationError) as e:
        console.print(f"[red]Failed to create Tunnel:[/red] {e}")
        raise SystemExit(1)
    except APIError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    finally:
        session.close()
