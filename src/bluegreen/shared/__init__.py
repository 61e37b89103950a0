"""Shared utilities for bluegreen."""

from .config import Config, get_config
from .utils import parse_duration, format_duration

__all__ = ['Config', 'get_config', 'parse_duration', 'format_duration']
