"""Centralized configuration management for bluegreen.

Every value can be set through the environment; CLI options override it.
"""

import os
from typing import Optional
from functools import lru_cache


def _env_int(name: str, default: str):
    """Read an integer setting; malformed values are kept for validate() to report."""
    value = os.getenv(name, default)
    try:
        return int(value)
    except ValueError:
        return value


class Config:
    """Configuration class with all environment variables."""

    # Application
    APP_NAME: str = os.getenv('BLUEGREEN_APP_NAME', 'web')
    BLUE_PORT: int = _env_int('BLUEGREEN_BLUE_PORT', '3001')
    GREEN_PORT: int = _env_int('BLUEGREEN_GREEN_PORT', '3002')
    CONTAINER_PORT: int = _env_int('BLUEGREEN_CONTAINER_PORT', '3000')

    # Container runtime
    DOCKER_HOST: Optional[str] = os.getenv('DOCKER_HOST')
    BIND_ADDRESS: str = os.getenv('BLUEGREEN_BIND_ADDRESS', '127.0.0.1')
    NETWORK: Optional[str] = os.getenv('BLUEGREEN_NETWORK')
    RESTART_POLICY: str = os.getenv('BLUEGREEN_RESTART_POLICY', 'unless-stopped')

    # Reverse proxy
    PROXY_CONFIG: str = os.getenv('BLUEGREEN_PROXY_CONFIG', '/etc/nginx/conf.d/app.conf')
    PROXY_VALIDATE_CMD: str = os.getenv('BLUEGREEN_PROXY_VALIDATE_CMD', 'nginx -t')
    PROXY_RELOAD_CMD: str = os.getenv('BLUEGREEN_PROXY_RELOAD_CMD', 'nginx -s reload')
    PROXY_COMMAND_TIMEOUT: int = _env_int('BLUEGREEN_PROXY_COMMAND_TIMEOUT', '30')

    # Deployment
    DEPLOY_TIMEOUT: str = os.getenv('BLUEGREEN_DEPLOY_TIMEOUT', '5m')
    LOCK_TIMEOUT: str = os.getenv('BLUEGREEN_LOCK_TIMEOUT', '0')
    DRAIN_SECONDS: str = os.getenv('BLUEGREEN_DRAIN_SECONDS', '0')

    # Health probe
    PROBE_MODE: str = os.getenv('BLUEGREEN_PROBE_MODE', 'http')
    PROBE_HOST: str = os.getenv('BLUEGREEN_PROBE_HOST', '127.0.0.1')
    PROBE_PATH: str = os.getenv('BLUEGREEN_PROBE_PATH', '/')
    PROBE_EXPECTED_STATUS: str = os.getenv('BLUEGREEN_PROBE_EXPECTED_STATUS', '200')
    PROBE_INTERVAL: str = os.getenv('BLUEGREEN_PROBE_INTERVAL', '2s')
    PROBE_REQUEST_TIMEOUT: str = os.getenv('BLUEGREEN_PROBE_REQUEST_TIMEOUT', '5s')
    PROBE_TIMEOUT: str = os.getenv('BLUEGREEN_PROBE_TIMEOUT', '60s')

    # Logging
    LOG_LEVEL: str = os.getenv('LOG_LEVEL', 'INFO').upper()

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        errors = []

        if not cls.APP_NAME:
            errors.append("BLUEGREEN_APP_NAME is required")

        for name in ('BLUE_PORT', 'GREEN_PORT', 'CONTAINER_PORT', 'PROXY_COMMAND_TIMEOUT'):
            value = getattr(cls, name)
            if not isinstance(value, int):
                errors.append(f"BLUEGREEN_{name} must be an integer, got {value!r}")

        for name in ('BLUE_PORT', 'GREEN_PORT', 'CONTAINER_PORT'):
            value = getattr(cls, name)
            if isinstance(value, int) and not (1 <= value <= 65535):
                errors.append(f"BLUEGREEN_{name} must be between 1 and 65535, got {value}")

        if cls.BLUE_PORT == cls.GREEN_PORT:
            errors.append("BLUEGREEN_BLUE_PORT and BLUEGREEN_GREEN_PORT must differ")

        if cls.PROBE_MODE not in ('http', 'tcp'):
            errors.append(f"BLUEGREEN_PROBE_MODE must be 'http' or 'tcp', got {cls.PROBE_MODE!r}")

        if isinstance(cls.PROXY_COMMAND_TIMEOUT, int) and cls.PROXY_COMMAND_TIMEOUT <= 0:
            errors.append("BLUEGREEN_PROXY_COMMAND_TIMEOUT must be positive")

        if errors:
            raise ValueError(f"Configuration errors: {'; '.join(errors)}")


@lru_cache()
def get_config() -> Config:
    """Get validated configuration instance."""
    Config.validate()
    return Config()
