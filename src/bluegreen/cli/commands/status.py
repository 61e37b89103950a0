"""Status command."""

import asyncio

import click
from pydantic import ValidationError
from rich.markup import escape
from rich.table import Table

from ...orchestration.deployer import BlueGreenDeployer
from ...orchestration.models import DeploymentSettings
from ...shared.errors import ConfigParseError


@click.command('status')
@click.option('--config', 'proxy_config', type=click.Path(dir_okay=False),
              help='Proxy upstream config file (default: $BLUEGREEN_PROXY_CONFIG)')
@click.option('--app-name', help='Container name prefix')
@click.option('--blue-port', type=click.IntRange(1, 65535), help='Host port of the blue slot')
@click.option('--green-port', type=click.IntRange(1, 65535), help='Host port of the green slot')
@click.option('--json', 'as_json', is_flag=True, help='Print the status as JSON')
@click.pass_obj
def status_command(ctx, proxy_config, app_name, blue_port, green_port, as_json):
    """Show which slot is live and the state of both slot containers."""
    try:
        settings = DeploymentSettings.from_config(
            ctx.config,
            proxy_config=proxy_config,
            app_name=app_name,
            blue_port=blue_port,
            green_port=green_port,
        )
    except (ValidationError, ValueError) as e:
        raise ctx.settings_error(e)

    status = asyncio.run(BlueGreenDeployer(settings).status())

    if as_json:
        click.echo(status.model_dump_json(indent=2))
    else:
        if status.active:
            ctx.console.print(f"Live slot: [bold {status.active.color.value}]{escape(str(status.active))}[/]")
        else:
            ctx.err_console.print(f"[red]✗ {escape(status.error or 'No live slot')}[/red]")
        if status.locked:
            ctx.console.print("[yellow]A deployment is in progress[/yellow]")

        table = Table(title=f"Slots ({status.proxy_config})")
        table.add_column("Color")
        table.add_column("Port", justify="right")
        table.add_column("Container")
        table.add_column("State")
        table.add_column("Image")
        table.add_column("Live")

        for slot in status.slots:
            container = slot.container
            state = container.status if container.exists else "absent"
            table.add_row(
                f"[{slot.target.color.value}]{slot.target.color.value}[/]",
                str(slot.target.port),
                escape(slot.target.container_name),
                escape(state or "unknown"),
                escape(container.image or "-"),
                "✓" if slot.live else ""
            )
        ctx.console.print(table)

    if status.error:
        click.get_current_context().exit(ConfigParseError.exit_code)
