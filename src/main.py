import click
from src.modules.server.commands import create_server_commands
from src.modules.logging import create_logger, LOG_LEVELS


class ShutdownContext:
    """Context object to store CLI state."""
    def __init__(self):
        self.logger = None

pass_context = click.make_pass_decorator(ShutdownContext, ensure=True)

@click.group()
@click.option('--output', '-o',
              type=click.Choice(['colorful', 'plain', 'json']),
              default='colorful',
              help='Output format (colorful for terminals, plain for files, json for machine parsing)',
              envvar='GRACEFUL_SHUTDOWN_OUTPUT')
@click.option('--log-level', '-l',
              type=click.Choice(LOG_LEVELS, case_sensitive=False),
              default='INFO',
              help='Set the logging level',
              envvar='GRACEFUL_SHUTDOWN_LOG_LEVEL')
@pass_context
def cli(ctx, output, log_level):
    """Graceful shutdown CLI: serve, drain and exit cleanly."""
    ctx.logger = create_logger(output, log_level)

# Add commands
cli.add_command(create_server_commands())

def main():
    cli()

if __name__ == '__main__':
    main()
