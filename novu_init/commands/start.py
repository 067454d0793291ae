"""The full setup wizard: onboard, scaffold, serve, tunnel, sync, trigger."""

import threading
import webbrowser
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel

from ..client import NovuClient
from ..config import REGIONS, get_settings
from ..exceptions import APIError, ServeError, SetupError, TunnelError, ValidationError
from ..onboarding import NovuAccount, run_onboarding
from ..scaffold import setup_project
from ..serve.local_server import DevServer, find_available_port, wait_for_server_ready
from ..serve.tunnel import SessionState
from .tunnel import expose_and_sync, install_interrupt_handler

console = Console()


@click.command("start")
@click.option("--port", "-p", type=int, default=lambda: get_settings().default_port, show_default="4000", help="First port to try for the dev server")
@click.option("--route", "-r", default=lambda: get_settings().default_route, show_default="/api/novu", help="Bridge endpoint route in the starter app")
@click.option("--region", type=click.Choice(REGIONS, case_sensitive=False), help="Novu region (asked if omitted)")
@click.option("--directory", "-d", type=click.Path(exists=True, file_okay=False), default=".", show_default=True, help="Where to clone the starter project")
@click.option("--repo-url", default=lambda: get_settings().repo_url, show_default="novu-nextjs-init starter", help="Starter project repository")
@click.option("--workflow", "-w", default=lambda: get_settings().trigger_workflow, show_default="Inbox Demo", help="Workflow triggered once the bridge is synced")
@click.option("--no-browser", is_flag=True, help="Never open a browser")
@click.option("--yes", "-y", is_flag=True, help="Reuse an existing project directory without asking")
def start_command(port: int, route: str, region: str, directory: str, repo_url: str,
                  workflow: str, no_browser: bool, yes: bool):
    """Create a Novu + Next.js starter project and connect it to Novu.

    \b
    Steps:
      1. Validate your Novu API key
      2. Clone the starter and write .env.local
      3. Start the dev server on a free port
      4. Expose it through a tunnel and wait for the bridge to be healthy
      5. Sync the bridge URL and trigger a demo notification

    \b
    Examples:
      novu-init start
      novu-init start --region EU --directory ~/code
    """
    console.print(Panel(
        "\U0001f389 Welcome to the Novu + Next.js Starter Kit! \U0001f389",
        border_style="blue",
    ))

    session = SessionState.load()
    server = None

    try:
        account = run_onboarding(region, open_browser=not no_browser)
        project = setup_project(account, Path(directory), repo_url, assume_yes=yes)

        port = find_available_port(port)
        console.print(f"[cyan]Using port:[/cyan] {port}")

        console.print(f"\n[yellow]Starting the development server on port {port}...[/yellow]")
        server = DevServer(str(project.path), port)
        server.start()

        console.print(f"[dim]Waiting for the server to be ready on port {port}...[/dim]")
        if wait_for_server_ready(port):
            console.print("  [green]✓[/green] Server is ready!")
        else:
            console.print("[yellow]Failed to confirm server is ready. Continuing with caution.[/yellow]")

        install_interrupt_handler(session, server)

        outcome = expose_and_sync(session, port, route, account.api_key, account.api_url)
        if outcome and outcome.success:
            _trigger_demo(account, project.subscriber_id, workflow, server.base_url, open_browser=not no_browser)

        console.print("\n[yellow]Happy coding! \U0001f389[/yellow]")
        console.print(f"[yellow]Subscriber ID:[/yellow] {project.subscriber_id}")

        if server.is_running:
            console.print("\n[dim]Dev server and tunnel are running. Press Ctrl+C to stop.[/dim]")
            server.wait()

    except SetupError as e:
        console.print(f"[red]Project setup failed:[/red] {e}")
        raise SystemExit(1)
    except ServeError as e:
        console.print(f"[red]Failed to start the development server:[/red] {e}")
        raise SystemExit(1)
    except (TunnelError, ValidationError) as e:
        console.print(f"[red]Failed to create Tunnel:[/red] {e}")
        console.print("[dim]You may need to manually configure your Novu settings.[/dim]")
        raise SystemExit(1)
    except APIError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(1)
    finally:
        session.close()
        if server:
            server.stop()


def _trigger_demo(account: NovuAccount, subscriber_id: str, workflow: str, app_url: str, open_browser: bool = True):
    """Trigger the demo workflow; on success reopen the app so the inbox shows it."""
    client = NovuClient(account.api_key, account.api_url)

    try:
        with console.status(f"[dim]Triggering '{workflow}'...[/dim]"):
            status, data = client.trigger(workflow, subscriber_id)
    except APIError as e:
        console.print(f"[red]❌ Failed to trigger Novu notification:[/red] {e}")
        if isinstance(e.body, (dict, list)):
            console.print_json(data=e.body)
        elif e.body:
            console.print(str(e.body), markup=False)
        return

    console.print("[cyan]Novu API Response:[/cyan]")
    console.print(f"[cyan]Status:[/cyan] {status}")
    if isinstance(data, (dict, list)):
        console.print_json(data=data)

    if status != 201:
        console.print("[yellow]⚠️ Novu notification triggered, but with an unexpected status code.[/yellow]")
        console.print("[yellow]Please check the Novu dashboard for more details.[/yellow]")
        return

    console.print("  [green]✓[/green] Novu notification triggered successfully!")
    if open_browser:
        delay = get_settings().reload_delay
        console.print(f"\n[cyan]Scheduling application reload in {delay:g} seconds...[/cyan]")
        timer = threading.Timer(delay, _reload_application, args=(app_url,))
        timer.daemon = True
        timer.start()


def _reload_application(url: str) -> None:
    console.print("[cyan]Reloading the application...[/cyan]")
    webbrowser.open(url)
    console.print("  [green]✓[/green] Application reloaded!")
