"""Tests for the click command surface."""

from unittest.mock import patch

from click.testing import CliRunner

from novu_init import __version__
from novu_init.cli import cli
from novu_init.exceptions import TunnelError
from novu_init.serve.registrar import SyncOutcome


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_sync_command_success() -> None:
    outcome = SyncOutcome(success=True, data={"data": []})

    with patch("novu_init.commands.sync.sync", return_value=outcome) as sync:
        result = CliRunner().invoke(
            cli, ["sync", "https://abc.novu.sh/api/novu", "-k", "sk_test", "--region", "eu"]
        )

    assert result.exit_code == 0, result.output
    sync.assert_called_once_with("https://abc.novu.sh/api/novu", "sk_test", "https://eu.api.novu.co")
    assert "Sync completed successfully" in result.output


def test_sync_command_failure_exits_nonzero() -> None:
    outcome = SyncOutcome(success=False, error={"message": "Bridge URL is not reachable"})

    with patch("novu_init.commands.sync.sync", return_value=outcome):
        result = CliRunner().invoke(cli, ["sync", "https://abc.novu.sh/api/novu", "-k", "sk_test"])

    assert result.exit_code == 1
    assert "Bridge URL is not reachable" in result.output


def test_sync_command_reads_key_from_environment() -> None:
    outcome = SyncOutcome(success=True, data=None)

    with patch("novu_init.commands.sync.sync", return_value=outcome) as sync:
        result = CliRunner().invoke(
            cli, ["sync", "https://abc.novu.sh/api/novu"], env={"NOVU_SECRET_KEY": "sk_env"}
        )

    assert result.exit_code == 0, result.output
    assert sync.call_args.args[1] == "sk_env"


def test_tunnel_command_exits_on_tunnel_failure(tmp_path) -> None:
    with patch("novu_init.commands.tunnel.wait_for_server_ready", return_value=True), \
            patch("novu_init.commands.tunnel.install_interrupt_handler"), \
            patch("novu_init.commands.tunnel.SessionState.load") as load, \
            patch("novu_init.commands.tunnel.create_tunnel", side_effect=TunnelError("issuer unreachable")):
        result = CliRunner().invoke(cli, ["tunnel", "--port", "4001", "-k", "sk_test"])

    assert result.exit_code == 1
    assert "issuer unreachable" in result.output
    load.return_value.close.assert_called_once()


def test_tunnel_command_rejects_relative_route() -> None:
    result = CliRunner().invoke(cli, ["tunnel", "--route", "api/novu", "-k", "sk_test"])
    assert result.exit_code == 2


def test_completion_script_uses_complete_var() -> None:
    result = CliRunner().invoke(cli, ["completion", "zsh"])
    assert result.exit_code == 0, result.output
    assert "_NOVU_INIT_COMPLETE" in result.output


def test_invalid_setting_exits_with_message() -> None:
    with patch("novu_init.commands.tunnel.create_tunnel") as create:
        result = CliRunner().invoke(
            cli, ["tunnel", "-k", "sk_test"], env={"NOVU_INIT_DEFAULT_PORT": "abc"}
        )

    assert result.exit_code == 1
    assert "NOVU_INIT_DEFAULT_PORT" in result.output
    create.assert_not_called()


def test_port_default_comes_from_settings() -> None:
    with patch("novu_init.commands.tunnel.wait_for_server_ready", return_value=True) as ready, \
            patch("novu_init.commands.tunnel.install_interrupt_handler"), \
            patch("novu_init.commands.tunnel.SessionState.load"), \
            patch("novu_init.commands.tunnel.create_tunnel", side_effect=TunnelError("stop here")):
        result = CliRunner().invoke(
            cli, ["tunnel", "-k", "sk_test"], env={"NOVU_INIT_DEFAULT_PORT": "5123"}
        )

    assert result.exit_code == 1
    assert ready.call_args.args[0] == 5123
