import click
from typing import Optional, TextIO, Tuple
from ..shutdown import ShutdownConfigError, ShutdownSettings
from .command.serve import ServeCommand


def create_server_commands() -> click.Command:
    """Create the server command."""

    @click.group(name='server')
    @click.pass_context
    def server(ctx):
        """Run a service with graceful shutdown."""
        pass

    @server.command(name='serve')
    @click.option('--host', default='127.0.0.1', show_default=True, envvar='GRACEFUL_SHUTDOWN_HOST',
                  help='Interface to bind')
    @click.option('--port', type=int, default=8080, show_default=True, envvar='GRACEFUL_SHUTDOWN_PORT',
                  help='Port to bind')
    @click.option('--config', 'config_file', type=click.File('r'), envvar='GRACEFUL_SHUTDOWN_CONFIG',
                  help='YAML file with shutdown settings')
    @click.option('--events', '-e', multiple=True, envvar='GRACEFUL_SHUTDOWN_EVENTS',
                  help='Signal that triggers shutdown (repeatable, default SIGINT and SIGTERM)')
    @click.option('--drain-grace-ms', type=float, envvar='GRACEFUL_SHUTDOWN_DRAIN_GRACE_MS',
                  help='Max time to wait for open connections to close')
    @click.option('--new-connections-grace-ms', type=float, envvar='GRACEFUL_SHUTDOWN_NEW_CONNECTIONS_GRACE_MS',
                  help='Delay before new connections are refused')
    @click.option('--teardown-timeout-ms', type=float, envvar='GRACEFUL_SHUTDOWN_TEARDOWN_TIMEOUT_MS',
                  help='Max time for cleanup after connections are closed')
    @click.pass_context
    def serve(
        ctx,
        host: str,
        port: int,
        config_file: Optional[TextIO],
        events: Tuple[str, ...],
        drain_grace_ms: Optional[float],
        new_connections_grace_ms: Optional[float],
        teardown_timeout_ms: Optional[float]
    ):
        """Serve HTTP until a termination signal, then drain and exit.
        
        Settings from --config are overridden by explicit options.
        """
        try:
            settings = ShutdownSettings.from_yaml(config_file.read()) if config_file else ShutdownSettings()
            settings = settings.merge(
                events=list(events) or None,
                drain_grace_ms=drain_grace_ms,
                new_connections_grace_ms=new_connections_grace_ms,
                teardown_timeout_ms=teardown_timeout_ms
            )
        except ShutdownConfigError as err:
            raise click.BadParameter(str(err), param_hint=f"'{err.field}'")

        command = ServeCommand(logger=ctx.obj.logger)
        command.run(host, port, settings)

    return server
