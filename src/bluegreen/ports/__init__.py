"""Blue/green port allocation."""

from .models import Color, ColorPorts, DeploymentTarget
from .manager import PortAllocator, find_upstream_ports

__all__ = [
    'Color',
    'ColorPorts',
    'DeploymentTarget',
    'PortAllocator',
    'find_upstream_ports'
]
