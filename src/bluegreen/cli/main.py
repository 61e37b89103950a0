"""Command-line entry point for bluegreen."""

import click
from rich.console import Console

from .. import __version__
from ..shared.config import get_config
from ..shared.python_logger_config import setup_python_logging, silence_noisy_loggers
from .context import CLIContext
from .commands.deploy import deploy_command
from .commands.status import status_command

LOG_LEVELS = ['TRACE', 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@click.group()
@click.version_option(__version__, prog_name="bluegreen")
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None,
              help='Logging level (default: $LOG_LEVEL or INFO)')
@click.option('--no-color', is_flag=True, help='Disable colored output')
@click.pass_context
def cli(ctx, log_level, no_color):
    """Blue-green zero-downtime deployments behind Nginx."""
    try:
        config = get_config()
    except ValueError as e:
        raise click.UsageError(str(e))

    setup_python_logging(log_level or config.LOG_LEVEL, use_colors=not no_color)
    silence_noisy_loggers()

    ctx.obj = CLIContext(
        config,
        console=Console(no_color=no_color),
        err_console=Console(stderr=True, no_color=no_color)
    )


cli.add_command(deploy_command)
cli.add_command(status_command)


def main():
    """Console script entry point."""
    cli()


if __name__ == '__main__':
    main()
