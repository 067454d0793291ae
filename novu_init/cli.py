"""novu-init command-line entry point."""

import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from . import __version__
from .commands.completion import completion_command
from .commands.start import start_command
from .commands.sync import sync_command
from .commands.tunnel import tunnel_command
from .config import get_settings
from .exceptions import ValidationError


def _configure_logging(verbose: bool) -> None:
    """Route log records to stderr; debug output only with --verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)],
        force=True,
    )
    # urllib3 and websockets are chatty at DEBUG
    for noisy in ("urllib3", "websockets"):
        logging.getLogger(noisy).setLevel(logging.INFO if verbose else logging.WARNING)


@click.group(invoke_without_command=True)
@click.version_option(__version__, prog_name="novu-init")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs")
@click.pass_context
def cli(ctx, verbose: bool):
    """Bootstrap a Novu + Next.js project with a live bridge endpoint.

    Runs the full setup wizard (``novu-init start``) when no command is given.
    """
    _configure_logging(verbose)
    try:
        get_settings()
    except ValidationError as e:
        Console(stderr=True).print(f"[red]Error:[/red] {escape(str(e))}")
        raise SystemExit(1)

    if ctx.invoked_subcommand is None:
        ctx.invoke(start_command)


cli.add_command(start_command)
cli.add_command(tunnel_command)
cli.add_command(sync_command)
cli.add_command(completion_command)


def main():
    cli()


if __name__ == "__main__":
    main()
