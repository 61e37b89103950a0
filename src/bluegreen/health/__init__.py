"""Readiness probing for new slots."""

from .models import ProbeMode, ProbeSettings, parse_status_codes
from .prober import HealthProber

__all__ = ['ProbeMode', 'ProbeSettings', 'parse_status_codes', 'HealthProber']
