"""Interactive Novu account onboarding."""

import webbrowser
from dataclasses import dataclass
from typing import Optional

import click
from rich.console import Console
from rich.prompt import Confirm

from .client import NovuClient
from .config import REGIONS, UTM_PARAMS, api_url_for, dashboard_url_for
from .exceptions import APIError

console = Console()


@dataclass
class NovuAccount:
    """Validated credentials for one Novu environment."""

    api_key: str
    identifier: str
    name: str
    region: str

    @property
    def api_url(self) -> str:
        return api_url_for(self.region)

    @property
    def masked_key(self) -> str:
        return self.api_key[:10] + "..."


def ask_region() -> str:
    return click.prompt("Are you from the EU or US?", type=click.Choice(REGIONS), default="US")


def account_url(region: str, has_account: bool) -> str:
    """Dashboard page for API keys (existing users) or sign-up (new users)."""
    base = dashboard_url_for(region)
    page = "api-keys" if has_account else "auth/signup"
    return f"{base}/{page}?{UTM_PARAMS}"


def open_dashboard(region: str, has_account: bool) -> None:
    url = account_url(region, has_account)
    console.print(f"[cyan]Opening Novu dashboard in your browser...[/cyan] [dim]{url}[/dim]")
    webbrowser.open(url)


def ask_api_key() -> str:
    console.print("\n[yellow]Please provide your Novu API Key:[/yellow]")
    console.print("[dim](You can find this in the Novu dashboard under 'API Keys')[/dim]")
    return click.prompt("Novu API Key", hide_input=True).strip()


def validate_api_key(api_key: str, region: str) -> Optional[NovuAccount]:
    """Return the account for a valid key, or None after printing why it is not."""
    client = NovuClient(api_key, api_url_for(region))
    try:
        with console.status("[dim]Validating API Key...[/dim]"):
            env = client.get_environment()
    except APIError as e:
        console.print(f"  [red]✗[/red] Error: {e}")
        return None

    console.print("  [green]✓[/green] API Key is valid!")
    console.print(f"  [cyan]Identifier:[/cyan] {env.get('identifier')}")
    console.print(f"  [cyan]Environment Name:[/cyan] {env.get('name')}")
    return NovuAccount(
        api_key=api_key,
        identifier=env.get("identifier", ""),
        name=env.get("name", ""),
        region=region,
    )


def run_onboarding(region: Optional[str] = None, open_browser: bool = True) -> NovuAccount:
    """Walk the user through region, account and API key until the key validates."""
    console.print("\n[bold blue]\U0001f680 Starting Novu onboarding process...[/bold blue]")

    region = (region or ask_region()).upper()
    has_account = Confirm.ask("Do you have a Novu account?", default=True)
    if open_browser:
        open_dashboard(region, has_account)

    while True:
        account = validate_api_key(ask_api_key(), region)
        if account:
            break
        console.print("[red]Invalid API Key. Please try again.[/red]")

    console.print("[bold green]✅ Novu configuration completed successfully![/bold green]")
    return account
