"""Blue-green deployment orchestration."""

from .models import (
    DeploymentPhase,
    DeploymentSettings,
    DeploymentResult,
    DeploymentStatus,
    SlotStatus
)
from .lock import DeploymentLock
from .deployer import BlueGreenDeployer, summarize

__all__ = [
    'DeploymentPhase',
    'DeploymentSettings',
    'DeploymentResult',
    'DeploymentStatus',
    'SlotStatus',
    'DeploymentLock',
    'BlueGreenDeployer',
    'summarize'
]
