"""Readiness probe settings."""

from enum import Enum
from typing import List, Union

from pydantic import BaseModel, Field, field_validator


class ProbeMode(str, Enum):
    """How readiness is decided."""
    HTTP = "http"  # GET a path and compare the status code
    TCP = "tcp"    # Open a TCP connection


def parse_status_codes(value: Union[str, int, List[int]]) -> List[int]:
    """Parse expected status codes such as ``200``, ``200,204`` or ``200-299``."""
    if isinstance(value, int):
        return [value]
    if isinstance(value, list):
        return value

    codes = []
    for part in value.split(','):
        part = part.strip()
        if not part:
            continue
        if '-' in part:
            low, high = part.split('-', 1)
            low, high = int(low), int(high)
            if low > high:
                raise ValueError(f"Invalid status range: {part}")
            codes.extend(range(low, high + 1))
        else:
            codes.append(int(part))
    return codes


class ProbeSettings(BaseModel):
    """Readiness probe configuration for a freshly launched slot."""

    mode: ProbeMode = Field(ProbeMode.HTTP, description="Probe type")
    host: str = Field("127.0.0.1", description="Host the slot port is published on")
    path: str = Field("/", description="HTTP path to request")
    expected_status: List[int] = Field(default_factory=lambda: [200], description="Status codes that mean ready")
    interval: float = Field(2.0, gt=0, description="Seconds between attempts")
    request_timeout: float = Field(5.0, gt=0, description="Seconds before a single attempt is abandoned")
    timeout: float = Field(60.0, gt=0, description="Seconds before the probe gives up")

    @field_validator('path')
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v.startswith('/'):
            return f"/{v}"
        return v

    @field_validator('expected_status', mode='before')
    @classmethod
    def validate_expected_status(cls, v):
        codes = parse_status_codes(v)
        if not codes:
            raise ValueError("At least one expected status code is required")
        for code in codes:
            if not (100 <= int(code) <= 599):
                raise ValueError(f"Invalid HTTP status code: {code}")
        return codes

    def url(self, port: int) -> str:
        return f"http://{self.host}:{port}{self.path}"
