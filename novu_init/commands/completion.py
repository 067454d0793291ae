"""Shell tab-completion script for novu-init."""

import os

import click
from click.shell_completion import get_completion_class

PROG_NAME = "novu-init"
COMPLETE_VAR = "_NOVU_INIT_COMPLETE"

_INSTALL_HINTS = {
    "bash": 'eval "$(novu-init completion bash)"  # or: novu-init completion bash >> ~/.bashrc',
    "zsh": 'eval "$(novu-init completion zsh)"   # or: novu-init completion zsh >> ~/.zshrc',
    "fish": "novu-init completion fish > ~/.config/fish/completions/novu-init.fish",
}


def _detect_shell() -> str | None:
    """Detect the current shell from $SHELL."""
    basename = os.path.basename(os.environ.get("SHELL", ""))
    return basename if basename in _INSTALL_HINTS else None


@click.command("completion")
@click.argument("shell", required=False, type=click.Choice(list(_INSTALL_HINTS)))
def completion_command(shell: str | None):
    """Print the tab-completion script for your shell.

    \b
      novu-init completion bash >> ~/.bashrc
      novu-init completion zsh  >> ~/.zshrc
      novu-init completion fish > ~/.config/fish/completions/novu-init.fish
    """
    from ..cli import cli

    shell = shell or _detect_shell()
    if not shell:
        raise click.ClickException(
            "Could not detect shell. Specify one explicitly: novu-init completion bash|zsh|fish"
        )

    comp_cls = get_completion_class(shell)
    click.echo(comp_cls(cli, {}, PROG_NAME, COMPLETE_VAR).source())
    click.echo(f"# Add to your profile: {_INSTALL_HINTS[shell]}", err=True)
