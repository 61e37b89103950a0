"""Reverse proxy configuration and traffic switching."""

from .config_file import ProxyConfigFile, rewrite_upstream_port
from .controller import ProxyController, ProxyCommandError
from .switcher import TrafficSwitcher

__all__ = [
    'ProxyConfigFile',
    'rewrite_upstream_port',
    'ProxyController',
    'ProxyCommandError',
    'TrafficSwitcher'
]
