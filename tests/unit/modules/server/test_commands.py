"""Tests for the command line interface."""

from unittest.mock import patch
from click.testing import CliRunner

from src.main import cli
from src.modules.shutdown import ShutdownSettings


def test_cli_help():
    result = CliRunner().invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "server" in result.output

def test_serve_help():
    result = CliRunner().invoke(cli, ["server", "serve", "--help"])

    assert result.exit_code == 0
    assert "--drain-grace-ms" in result.output

def test_serve_rejects_invalid_grace():
    result = CliRunner().invoke(cli, ["-o", "plain", "server", "serve", "--drain-grace-ms", "0"])

    assert result.exit_code == 2
    assert "drain_grace_ms" in result.output

def test_serve_merges_config_file_and_options():
    runner = CliRunner()
    with runner.isolated_filesystem():
        with open("shutdown.yaml", "w") as f:
            f.write("shutdown:\n  events: [SIGTERM]\n  drain_grace_ms: 3000\n  new_connections_grace_ms: 100\n")

        with patch("src.modules.server.commands.ServeCommand") as serve_command:
            result = runner.invoke(cli, [
                "-o", "plain",
                "server", "serve",
                "--config", "shutdown.yaml",
                "--port", "9000",
                "--new-connections-grace-ms", "250",
            ])

    assert result.exit_code == 0, result.output
    host, port, settings = serve_command.return_value.run.call_args.args
    assert (host, port) == ("127.0.0.1", 9000)
    assert settings == ShutdownSettings(
        events=["SIGTERM"],
        drain_grace_ms=3000,
        new_connections_grace_ms=250
    )

def test_serve_options_from_environment():
    with patch("src.modules.server.commands.ServeCommand") as serve_command:
        result = CliRunner().invoke(
            cli,
            ["-o", "plain", "server", "serve"],
            env={"GRACEFUL_SHUTDOWN_DRAIN_GRACE_MS": "1500", "GRACEFUL_SHUTDOWN_EVENTS": "SIGTERM SIGHUP"}
        )

    assert result.exit_code == 0, result.output
    settings = serve_command.return_value.run.call_args.args[2]
    assert settings.drain_grace_ms == 1500
    assert settings.events == ["SIGTERM", "SIGHUP"]
