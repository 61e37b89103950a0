"""Container models for blue-green slots."""

from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator
import re

MANAGED_LABEL = "managed-by"
MANAGED_VALUE = "bluegreen"


class ContainerSpec(BaseModel):
    """Everything needed to start one slot's container."""

    name: str = Field(..., description="Container name, e.g. web-green")
    image: str = Field(..., description="Image reference to run")
    host_port: int = Field(..., ge=1, le=65535, description="Host port the slot owns")
    container_port: int = Field(3000, ge=1, le=65535, description="Port the app listens on inside the container")
    bind_address: str = Field("127.0.0.1", description="Host address to publish on")
    environment: Dict[str, str] = Field(default_factory=dict, description="Environment variables")
    labels: Dict[str, str] = Field(default_factory=dict, description="Container labels")
    network: Optional[str] = Field(None, description="Network to join")
    restart_policy: str = Field("unless-stopped", description="Restart policy")
    pull: str = Field("missing", description="Pull policy: always, missing or never")

    @field_validator('image')
    @classmethod
    def validate_image(cls, v: str) -> str:
        """Image reference must be non-empty and contain no whitespace."""
        if not v or not v.strip():
            raise ValueError("Image reference cannot be empty")
        if re.search(r'\s', v):
            raise ValueError(f"Image reference cannot contain whitespace: {v!r}")
        return v

    @field_validator('restart_policy')
    @classmethod
    def validate_restart_policy(cls, v: str) -> str:
        valid_policies = ["no", "always", "unless-stopped", "on-failure"]
        if v not in valid_policies:
            raise ValueError(f"Restart policy must be one of: {', '.join(valid_policies)}")
        return v

    @field_validator('bind_address')
    @classmethod
    def validate_bind_address(cls, v: str) -> str:
        valid_addresses = ["127.0.0.1", "0.0.0.0", "localhost"]
        if v not in valid_addresses:
            raise ValueError(f"Bind address must be one of: {', '.join(valid_addresses)}")
        if v == "localhost":
            return "127.0.0.1"
        return v

    @field_validator('pull')
    @classmethod
    def validate_pull(cls, v: str) -> str:
        if v not in ("always", "missing", "never"):
            raise ValueError("Pull policy must be one of: always, missing, never")
        return v

    def publish(self) -> List[Tuple[str, int]]:
        """Port publishing in python-on-whales format: ("host_ip:host_port", container_port)."""
        return [(f"{self.bind_address}:{self.host_port}", self.container_port)]


class ContainerState(BaseModel):
    """Observed state of a named container."""
    name: str
    exists: bool = False
    running: bool = False
    status: Optional[str] = Field(None, description="Runtime status, e.g. running, exited")
    image: Optional[str] = None
    container_id: Optional[str] = None
