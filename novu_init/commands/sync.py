"""Sync a bridge URL with the Novu platform."""

import click
from rich.console import Console

from ..config import REGIONS, api_url_for
from ..serve.registrar import SyncOutcome, sync

console = Console()


def print_sync_outcome(outcome: SyncOutcome) -> None:
    """Show the sync result, including the upstream error body on failure."""
    if outcome.success:
        console.print("  [green]✓[/green] Sync completed successfully!")
        if outcome.data is not None:
            console.print("[dim]Sync result:[/dim]")
            _print_body(outcome.data)
        return

    console.print("  [red]✗[/red] Sync failed")
    if outcome.error is not None:
        console.print("[red]Error data:[/red]")
        _print_body(outcome.error)


def _print_body(body) -> None:
    if isinstance(body, (dict, list)):
        console.print_json(data=body)
    else:
        console.print(str(body), markup=False, highlight=False)


@click.command("sync")
@click.argument("bridge_url")
@click.option("--api-key", "-k", envvar="NOVU_SECRET_KEY", help="Novu API key (defaults to $NOVU_SECRET_KEY)")
@click.option("--region", type=click.Choice(REGIONS, case_sensitive=False), default="US", show_default=True, help="Novu region")
@click.option("--api-url", help="Novu API base URL (overrides --region)")
def sync_command(bridge_url: str, api_key: str, region: str, api_url: str):
    """Point the Novu platform at a bridge endpoint.

    BRIDGE_URL: Public URL of the bridge route, e.g. https://abc.novu.sh/api/novu

    \b
    Examples:
      novu-init sync https://abc.novu.sh/api/novu
      novu-init sync https://abc.novu.sh/api/novu --region EU -k <key>
    """
    if not api_key:
        api_key = click.prompt("Novu API Key", hide_input=True).strip()

    api_url = api_url or api_url_for(region)
    console.print("[cyan]Syncing with Novu...[/cyan]")
    console.print(f"[dim]Bridge URL: {bridge_url}[/dim]")
    console.print(f"[dim]API URL: {api_url}[/dim]")

    with console.status("[dim]Syncing...[/dim]"):
        outcome = sync(bridge_url, api_key, api_url)

    print_sync_outcome(outcome)
    if not outcome.success:
        raise SystemExit(1)
