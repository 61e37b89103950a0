"""Shared CLI helpers: the command context and custom parameter types."""

import click
from pydantic import ValidationError
from rich.console import Console

from ..shared.config import Config
from ..shared.utils import parse_duration, parse_env_pairs


class DurationType(click.ParamType):
    """Click parameter accepting 90, 90s, 5m, 1h or 1m30s; yields seconds."""
    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationType()


class CLIContext:
    """Shared state handed to every command."""

    def __init__(self, config: Config, console: Console = None, err_console: Console = None):
        self.config = config
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def env_from_pairs(self, pairs) -> dict:
        try:
            return parse_env_pairs(pairs)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="'--env'")

    def settings_error(self, error: Exception) -> click.UsageError:
        """Turn a settings validation failure into a usage error (exit code 2)."""
        if isinstance(error, ValidationError):
            messages = []
            for item in error.errors():
                location = ".".join(str(part) for part in item['loc'])
                messages.append(f"{location}: {item['msg']}" if location else item['msg'])
            return click.UsageError("Invalid settings: " + "; ".join(messages))
        return click.UsageError(str(error))
