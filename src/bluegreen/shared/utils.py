"""Common utility functions for bluegreen."""

import re
from datetime import datetime, timezone
from typing import Dict, Iterable, Union

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h)?')
_UNIT_SECONDS = {'ms': 0.001, 's': 1.0, 'm': 60.0, 'h': 3600.0, None: 1.0}


def get_current_timestamp() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def parse_duration(value: Union[str, int, float]) -> float:
    """Parse a duration into seconds.

    Accepts bare numbers (seconds) and unit-suffixed values such as
    ``90s``, ``5m``, ``1h`` or compound ``1m30s``.

    Raises:
        ValueError: If the value is empty, negative or malformed
    """
    if isinstance(value, (int, float)):
        if value < 0:
            raise ValueError(f"Duration must not be negative: {value}")
        return float(value)

    text = value.strip().lower().replace(' ', '')
    if not text:
        raise ValueError("Duration must not be empty")

    total = 0.0
    pos = 0
    units_seen = []
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if not match or match.end() == pos:
            raise ValueError(f"Invalid duration: {value!r}")
        number, unit = match.groups()
        if unit is None and match.end() != len(text):
            raise ValueError(f"Invalid duration: {value!r}")
        if unit in units_seen:
            raise ValueError(f"Duplicate unit {unit!r} in duration: {value!r}")
        units_seen.append(unit)
        total += float(number) * _UNIT_SECONDS[unit]
        pos = match.end()

    return total


def format_duration(seconds: float) -> str:
    """Format seconds as a short human-readable duration."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(round(seconds)), 60)
    if minutes < 60:
        return f"{minutes}m{secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes:02d}m"


def parse_env_pairs(pairs: Iterable[str]) -> Dict[str, str]:
    """Parse ``KEY=value`` strings into a dictionary.

    Raises:
        ValueError: If an entry has no ``=`` or an empty key
    """
    env = {}
    for pair in pairs:
        if '=' not in pair:
            raise ValueError(f"Environment entry must be KEY=value: {pair!r}")
        key, val = pair.split('=', 1)
        key = key.strip()
        if not key:
            raise ValueError(f"Environment entry has an empty key: {pair!r}")
        env[key] = val
    return env
