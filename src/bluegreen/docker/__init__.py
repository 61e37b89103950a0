"""Container runtime access for blue-green slots."""

from .models import ContainerSpec, ContainerState
from .manager import (
    ContainerRuntimeError,
    DockerRuntime,
    ContainerLauncher,
    InstanceReaper,
    run_blocking
)

__all__ = [
    'ContainerSpec',
    'ContainerState',
    'ContainerRuntimeError',
    'DockerRuntime',
    'ContainerLauncher',
    'InstanceReaper',
    'run_blocking'
]
