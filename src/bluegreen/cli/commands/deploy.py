"""Deploy command."""

import asyncio

import click
from pydantic import ValidationError
from rich.markup import escape

from ..context import DURATION
from ...orchestration.deployer import BlueGreenDeployer, summarize
from ...orchestration.models import DeploymentSettings


@click.command('deploy')
@click.option('--image', required=True, help='Image reference to deploy, e.g. ghcr.io/acme/web:1.4.2')
@click.option('--config', 'proxy_config', type=click.Path(dir_okay=False),
              help='Proxy upstream config file (default: $BLUEGREEN_PROXY_CONFIG)')
@click.option('--timeout', 'deploy_timeout', type=DURATION,
              help='Overall budget for launch and readiness, e.g. 90s or 5m')
@click.option('--app-name', help='Container name prefix; slots are <app>-blue and <app>-green')
@click.option('--blue-port', type=click.IntRange(1, 65535), help='Host port of the blue slot')
@click.option('--green-port', type=click.IntRange(1, 65535), help='Host port of the green slot')
@click.option('--container-port', type=click.IntRange(1, 65535), help='Port the app listens on in the container')
@click.option('--env', '-e', multiple=True, help='Container environment variable (KEY=value), repeatable')
@click.option('--network', help='Docker network to join')
@click.option('--bind-address', type=click.Choice(['127.0.0.1', '0.0.0.0', 'localhost']),
              help='Host address to publish the slot port on')
@click.option('--pull', type=click.Choice(['always', 'missing', 'never']), help='Image pull policy')
@click.option('--probe-mode', type=click.Choice(['http', 'tcp']), help='Readiness check type')
@click.option('--probe-path', help='HTTP path for the readiness check')
@click.option('--expected-status', help='Status codes meaning ready, e.g. 200 or 200-299')
@click.option('--probe-interval', type=DURATION, help='Delay between readiness attempts')
@click.option('--probe-timeout', type=DURATION, help='Give up on readiness after this long')
@click.option('--validate-cmd', help='Proxy config test command ({config} is replaced by the path)')
@click.option('--reload-cmd', help='Proxy graceful reload command')
@click.option('--lock-timeout', type=DURATION, help='Wait this long for a concurrent deployment')
@click.option('--drain', 'drain_seconds', type=DURATION, help='Delay before stopping the old slot')
@click.option('--json', 'as_json', is_flag=True, help='Print the deployment result as JSON')
@click.pass_obj
def deploy_command(ctx, image, proxy_config, deploy_timeout, app_name, blue_port, green_port,
                   container_port, env, network, bind_address, pull, probe_mode, probe_path,
                   expected_status, probe_interval, probe_timeout, validate_cmd, reload_cmd,
                   lock_timeout, drain_seconds, as_json):
    """Deploy IMAGE to the idle slot and switch traffic to it."""
    try:
        settings = DeploymentSettings.from_config(
            ctx.config,
            probe_overrides={
                'mode': probe_mode,
                'path': probe_path,
                'expected_status': expected_status,
                'interval': probe_interval,
                'timeout': probe_timeout,
            },
            app_name=app_name,
            blue_port=blue_port,
            green_port=green_port,
            container_port=container_port,
            proxy_config=proxy_config,
            validate_command=validate_cmd,
            reload_command=reload_cmd,
            deploy_timeout=deploy_timeout,
            lock_timeout=lock_timeout,
            drain_seconds=drain_seconds,
            environment=ctx.env_from_pairs(env) or None,
            network=network,
            bind_address=bind_address,
            pull=pull,
        )
    except (ValidationError, ValueError) as e:
        raise ctx.settings_error(e)

    result = asyncio.run(BlueGreenDeployer(settings).deploy(image))

    if as_json:
        click.echo(result.model_dump_json(indent=2))
    else:
        headline, details = summarize(result)
        if result.succeeded:
            ctx.console.print(f"[green]✓ {escape(headline)}[/green]")
            for line in details:
                style = "yellow" if line.startswith("warning") else "dim"
                ctx.console.print(f"  [{style}]{escape(line)}[/{style}]")
        else:
            ctx.err_console.print(f"[red]✗ {escape(headline)}[/red]")
            for line in details:
                style = "red" if "FAILED" in line else "yellow"
                ctx.err_console.print(f"  [{style}]{escape(line)}[/{style}]")

    if result.exit_code:
        click.get_current_context().exit(result.exit_code)
