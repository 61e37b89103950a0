"""Active port detection from the live proxy configuration."""

import logging
import re
from pathlib import Path
from typing import List, Tuple, Union

from .models import Color, ColorPorts, DeploymentTarget
from ..shared.errors import ConfigParseError

logger = logging.getLogger(__name__)

# proxy_pass http://127.0.0.1:3001;  or  server 127.0.0.1:3001 ...;
UPSTREAM_PATTERN = re.compile(
    r'^\s*(?:proxy_pass\s+https?://[^\s:;/]+|server\s+[^\s:;]+):(?P<port>\d{1,5})\b',
    re.MULTILINE
)


def find_upstream_ports(text: str) -> List[int]:
    """Return every upstream port referenced by a non-comment line, in order."""
    return [int(match.group('port')) for match in UPSTREAM_PATTERN.finditer(text)]


class PortAllocator:
    """Determines which slot is live and which one the next deploy goes to.

    The proxy configuration is the only source of truth; nothing is persisted.
    """

    def __init__(self, config_path: Union[str, Path], app_name: str, ports: ColorPorts = None):
        self.config_path = Path(config_path)
        self.app_name = app_name
        self.ports = ports or ColorPorts()

    def read_active_port(self, text: str) -> int:
        """Extract the single live color port from proxy config text.

        Raises:
            ConfigParseError: If no color port, an unknown port, or both
                color ports are referenced
        """
        found = find_upstream_ports(text)
        if not found:
            raise ConfigParseError(
                f"No upstream port found in {self.config_path} "
                f"(expected a proxy_pass or server line with port {self.ports.blue} or {self.ports.green})"
            )

        known = {port for port in found if port in self.ports.ports}
        unknown = sorted({port for port in found if port not in self.ports.ports})

        if not known:
            raise ConfigParseError(
                f"Upstream port(s) {', '.join(map(str, unknown))} in {self.config_path} "
                f"match neither blue ({self.ports.blue}) nor green ({self.ports.green})"
            )
        if len(known) > 1:
            raise ConfigParseError(
                f"Both blue ({self.ports.blue}) and green ({self.ports.green}) are referenced "
                f"in {self.config_path}; refusing to guess which one is live"
            )
        if unknown:
            logger.warning(f"Ignoring unrelated upstream port(s) {unknown} in {self.config_path}")

        return known.pop()

    def _read_config(self) -> str:
        try:
            return self.config_path.read_text()
        except OSError as e:
            raise ConfigParseError(f"Cannot read proxy config {self.config_path}: {e}") from e

    def active_target(self) -> DeploymentTarget:
        """The slot currently receiving traffic."""
        port = self.read_active_port(self._read_config())
        color = self.ports.color_for(port)
        return DeploymentTarget.for_color(self.app_name, color, self.ports)

    def inactive_target(self) -> DeploymentTarget:
        """The slot the next deployment should use."""
        return self.resolve()[1]

    def resolve(self) -> Tuple[DeploymentTarget, DeploymentTarget]:
        """Return the (active, inactive) pair."""
        active = self.active_target()
        inactive = DeploymentTarget.for_color(self.app_name, active.color.other, self.ports)
        logger.info(f"Active slot is {active}; next deploy goes to {inactive}")
        return active, inactive
