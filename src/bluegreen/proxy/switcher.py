"""Moves live traffic from one slot to the other."""

import logging

from .config_file import ProxyConfigFile, rewrite_upstream_port, ENCODING, ERRORS
from .controller import ProxyController, ProxyCommandError
from ..ports.models import DeploymentTarget
from ..shared.errors import ReloadError

logger = logging.getLogger(__name__)


class TrafficSwitcher:
    """Rewrites the upstream port, validates, and reloads the proxy.

    On any failure the config file is put back byte-for-byte before
    ReloadError is raised.
    """

    def __init__(self, config: ProxyConfigFile, controller: ProxyController):
        self.config = config
        self.controller = controller

    def switch(self, current: DeploymentTarget, new: DeploymentTarget) -> None:
        """Point the proxy at ``new`` instead of ``current``.

        Raises:
            ConfigParseError: If the config no longer references ``current``
            ReloadError: If the edit, the config test or the reload fails
        """
        try:
            original = self.config.read_bytes()
        except OSError as e:
            raise ReloadError(f"Cannot read proxy config {self.config.path}: {e}") from e

        updated = rewrite_upstream_port(original.decode(ENCODING, ERRORS), current.port, new.port)

        logger.info(f"Switching upstream in {self.config.path}: {current.port} -> {new.port}")
        try:
            self.config.write_text(updated)
        except OSError as e:
            self._restore(original)
            raise ReloadError(f"Cannot write proxy config {self.config.path}: {e}") from e

        try:
            self.controller.validate()
        except ProxyCommandError as e:
            logger.error(f"Proxy rejected the new configuration: {e.detail}")
            self._restore(original)
            raise ReloadError(f"Proxy config test failed: {e.detail}") from e

        try:
            self.controller.reload()
        except ProxyCommandError as e:
            logger.error(f"Proxy reload failed: {e.detail}")
            self._restore(original)
            self._reload_previous()
            raise ReloadError(f"Proxy reload failed: {e.detail}") from e

        logger.info(f"Traffic now routed to {new}")

    def _restore(self, original: bytes) -> None:
        try:
            self.config.restore(original)
        except OSError as e:
            logger.critical(f"Could not restore {self.config.path}; restore it manually: {e}")

    def _reload_previous(self) -> None:
        """Best-effort reload so the proxy runs the restored config."""
        try:
            self.controller.reload()
        except ProxyCommandError as e:
            logger.error(f"Reload after restoring previous config also failed: {e.detail}")
