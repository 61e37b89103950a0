"""Reverse proxy validate and reload commands."""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Union

from ..shared.python_logger_config import TRACE

logger = logging.getLogger(__name__)


class ProxyCommandError(Exception):
    """A proxy control command failed."""

    def __init__(self, command: List[str], detail: str, returncode: int = None):
        self.command = command
        self.detail = detail
        self.returncode = returncode
        super().__init__(f"`{shlex.join(command)}` failed: {detail}")


class ProxyController:
    """Runs the proxy's config test and graceful reload.

    Commands are split with shlex and run without a shell. A ``{config}``
    placeholder is replaced by the upstream config path, so validation can
    target a single file (``nginx -t -c {config}``) or a proxy in a
    container (``docker exec nginx nginx -t``).
    """

    def __init__(self, validate_command: str = "nginx -t", reload_command: str = "nginx -s reload",
                 config_path: Union[str, Path] = None, timeout: float = 30):
        self.validate_command = validate_command
        self.reload_command = reload_command
        self.config_path = str(config_path) if config_path else ""
        self.timeout = timeout

    def _argv(self, command: str) -> List[str]:
        return [part.replace("{config}", self.config_path) for part in shlex.split(command)]

    def _run(self, command: str) -> str:
        argv = self._argv(command)
        if not argv:
            raise ProxyCommandError(argv, "empty command")

        logger.debug(f"Running {shlex.join(argv)}")
        try:
            result = subprocess.run(argv, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise ProxyCommandError(argv, f"executable not found: {argv[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise ProxyCommandError(argv, f"timed out after {self.timeout}s") from e
        except OSError as e:
            raise ProxyCommandError(argv, str(e)) from e

        output = "\n".join(part.strip() for part in (result.stdout, result.stderr) if part and part.strip())
        if output:
            logger.log(TRACE, f"{argv[0]} output: {output}")
        if result.returncode != 0:
            detail = output.splitlines()[-1] if output else f"exit code {result.returncode}"
            raise ProxyCommandError(argv, detail, result.returncode)
        return output

    def validate(self) -> str:
        """Syntax-check the proxy configuration."""
        output = self._run(self.validate_command)
        logger.info("Proxy configuration test passed")
        return output

    def reload(self) -> str:
        """Signal a graceful reload; in-flight connections are kept."""
        output = self._run(self.reload_command)
        logger.info("Proxy reloaded")
        return output
