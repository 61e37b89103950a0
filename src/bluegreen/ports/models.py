"""Port and color models for blue-green targets."""

from enum import Enum
from typing import Tuple

from pydantic import BaseModel, Field, field_validator, model_validator
import re


class Color(str, Enum):
    """The two deployment slots."""
    BLUE = "blue"
    GREEN = "green"

    @property
    def other(self) -> "Color":
        """The complementary color."""
        return Color.GREEN if self is Color.BLUE else Color.BLUE


class ColorPorts(BaseModel):
    """Fixed two-element mapping between colors and host ports."""
    blue: int = Field(3001, ge=1, le=65535, description="Host port of the blue slot")
    green: int = Field(3002, ge=1, le=65535, description="Host port of the green slot")

    @model_validator(mode='after')
    def validate_distinct(self) -> "ColorPorts":
        """Blue and green must not share a port."""
        if self.blue == self.green:
            raise ValueError(f"Blue and green ports must differ, both are {self.blue}")
        return self

    def port_for(self, color: Color) -> int:
        return self.blue if color is Color.BLUE else self.green

    def color_for(self, port: int) -> Color:
        """Look up the color bound to a port.

        Raises:
            KeyError: If the port belongs to neither slot
        """
        if port == self.blue:
            return Color.BLUE
        if port == self.green:
            return Color.GREEN
        raise KeyError(port)

    @property
    def ports(self) -> Tuple[int, int]:
        return (self.blue, self.green)


class DeploymentTarget(BaseModel):
    """One blue/green slot: its color, host port and container name."""
    color: Color
    port: int = Field(..., ge=1, le=65535)
    container_name: str

    @field_validator('container_name')
    @classmethod
    def validate_container_name(cls, v: str) -> str:
        """Validate Docker container name format."""
        if not re.match(r'^[a-zA-Z0-9][a-zA-Z0-9_.-]*$', v):
            raise ValueError(f"Invalid container name: {v!r}")
        return v

    @classmethod
    def for_color(cls, app_name: str, color: Color, ports: ColorPorts) -> "DeploymentTarget":
        return cls(
            color=color,
            port=ports.port_for(color),
            container_name=f"{app_name}-{color.value}"
        )

    def __str__(self) -> str:
        return f"{self.color.value}:{self.port} ({self.container_name})"
