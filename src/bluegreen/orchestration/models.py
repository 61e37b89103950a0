"""Deployment settings, phases and results."""

import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from ..docker.models import ContainerState
from ..health.models import ProbeSettings
from ..ports.models import ColorPorts, DeploymentTarget
from ..shared.config import Config
from ..shared.utils import get_current_timestamp, parse_duration


class DeploymentPhase(str, Enum):
    """States of a single deployment."""
    IDLE = "idle"
    LAUNCHING = "launching"
    PROBING = "probing"
    SWITCHING = "switching"
    REAPING = "reaping"
    ROLLED_BACK = "rolled_back"


ALLOWED_TRANSITIONS = {
    DeploymentPhase.IDLE: {DeploymentPhase.LAUNCHING},
    DeploymentPhase.LAUNCHING: {DeploymentPhase.PROBING, DeploymentPhase.ROLLED_BACK},
    DeploymentPhase.PROBING: {DeploymentPhase.SWITCHING, DeploymentPhase.ROLLED_BACK},
    DeploymentPhase.SWITCHING: {DeploymentPhase.REAPING, DeploymentPhase.ROLLED_BACK},
    DeploymentPhase.REAPING: {DeploymentPhase.IDLE},
    DeploymentPhase.ROLLED_BACK: set(),
}


class DeploymentSettings(BaseModel):
    """Everything one blue-green deployment needs."""

    app_name: str = Field("web", description="Prefix for slot container names")
    ports: ColorPorts = Field(default_factory=ColorPorts)
    container_port: int = Field(3000, ge=1, le=65535)
    proxy_config: Path = Field(Path("/etc/nginx/conf.d/app.conf"), description="Upstream config file")
    validate_command: str = Field("nginx -t")
    reload_command: str = Field("nginx -s reload")
    proxy_command_timeout: float = Field(30, gt=0)
    probe: ProbeSettings = Field(default_factory=ProbeSettings)
    deploy_timeout: float = Field(300, gt=0, description="Overall budget for launch and readiness")
    lock_timeout: float = Field(0, ge=0, description="Seconds to wait for a concurrent deploy")
    drain_seconds: float = Field(0, ge=0, description="Delay before stopping the old slot")
    environment: Dict[str, str] = Field(default_factory=dict)
    network: Optional[str] = None
    bind_address: str = "127.0.0.1"
    restart_policy: str = "unless-stopped"
    pull: str = "missing"
    docker_host: Optional[str] = None

    @field_validator('app_name')
    @classmethod
    def validate_app_name(cls, v: str) -> str:
        if not re.match(r'^[a-z0-9][a-z0-9_-]*$', v):
            raise ValueError("App name can only contain lowercase letters, numbers, dash, and underscore")
        if len(v) > 56:
            raise ValueError("App name must be 56 characters or less")
        return v

    @field_validator('deploy_timeout', 'lock_timeout', 'drain_seconds', 'proxy_command_timeout', mode='before')
    @classmethod
    def validate_duration(cls, v):
        if isinstance(v, str):
            return parse_duration(v)
        return v

    @property
    def lock_path(self) -> Path:
        real = self.proxy_config.resolve()
        return real.with_name(f"{real.name}.lock")

    @classmethod
    def from_config(cls, config: Config, probe_overrides: Optional[dict] = None,
                    **overrides) -> "DeploymentSettings":
        """Build settings from environment configuration, then apply overrides.

        Overrides whose value is None are ignored so unset CLI options fall
        back to the environment. ``blue_port`` and ``green_port`` override
        one side of the color mapping.
        """
        probe_values = {
            "mode": config.PROBE_MODE,
            "host": config.PROBE_HOST,
            "path": config.PROBE_PATH,
            "expected_status": config.PROBE_EXPECTED_STATUS,
            "interval": parse_duration(config.PROBE_INTERVAL),
            "request_timeout": parse_duration(config.PROBE_REQUEST_TIMEOUT),
            "timeout": parse_duration(config.PROBE_TIMEOUT),
        }
        probe_values.update({key: value for key, value in (probe_overrides or {}).items() if value is not None})

        blue_port = overrides.pop("blue_port", None) or config.BLUE_PORT
        green_port = overrides.pop("green_port", None) or config.GREEN_PORT

        values = {
            "app_name": config.APP_NAME,
            "ports": ColorPorts(blue=blue_port, green=green_port),
            "container_port": config.CONTAINER_PORT,
            "proxy_config": Path(config.PROXY_CONFIG),
            "validate_command": config.PROXY_VALIDATE_CMD,
            "reload_command": config.PROXY_RELOAD_CMD,
            "proxy_command_timeout": config.PROXY_COMMAND_TIMEOUT,
            "probe": ProbeSettings(**probe_values),
            "deploy_timeout": config.DEPLOY_TIMEOUT,
            "lock_timeout": config.LOCK_TIMEOUT,
            "drain_seconds": config.DRAIN_SECONDS,
            "network": config.NETWORK,
            "bind_address": config.BIND_ADDRESS,
            "restart_policy": config.RESTART_POLICY,
            "docker_host": config.DOCKER_HOST,
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


class PhaseTransition(BaseModel):
    phase: DeploymentPhase
    at: datetime = Field(default_factory=get_current_timestamp)


class DeploymentResult(BaseModel):
    """Outcome of one deploy invocation, used for the operator summary."""

    image: str
    previous: Optional[DeploymentTarget] = None
    target: Optional[DeploymentTarget] = None
    phase: DeploymentPhase = DeploymentPhase.IDLE
    transitions: List[PhaseTransition] = Field(default_factory=list)
    error: Optional[str] = None
    failed_stage: Optional[str] = None
    exit_code: int = 0
    rollback_actions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    probe_attempts: int = 0
    started_at: datetime = Field(default_factory=get_current_timestamp)
    finished_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def rolled_back(self) -> bool:
        return self.phase is DeploymentPhase.ROLLED_BACK

    def transition(self, phase: DeploymentPhase) -> None:
        """Move to ``phase``; illegal moves are programming errors."""
        if phase not in ALLOWED_TRANSITIONS[self.phase]:
            raise RuntimeError(f"Illegal deployment transition {self.phase.value} -> {phase.value}")
        self.phase = phase
        self.transitions.append(PhaseTransition(phase=phase))

    def fail(self, error: Exception, stage: Optional[str] = None, exit_code: Optional[int] = None) -> None:
        self.error = str(error) or error.__class__.__name__
        self.failed_stage = stage or getattr(error, 'stage', self.phase.value)
        self.exit_code = exit_code if exit_code is not None else getattr(error, 'exit_code', 1)

    @property
    def duration(self) -> Optional[float]:
        if not self.finished_at:
            return None
        return (self.finished_at - self.started_at).total_seconds()


class SlotStatus(BaseModel):
    target: DeploymentTarget
    container: ContainerState
    live: bool = False


class DeploymentStatus(BaseModel):
    """Live state derived from the proxy config and the container runtime."""
    proxy_config: Path
    active: Optional[DeploymentTarget] = None
    error: Optional[str] = None
    slots: List[SlotStatus] = Field(default_factory=list)
    locked: bool = False
