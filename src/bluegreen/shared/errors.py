"""Deployment error taxonomy.

Each fatal error carries the CLI exit code and the stage it aborted.
"""


class DeploymentError(Exception):
    """Base class for all deployment failures."""
    exit_code = 1
    stage = "deploy"


class ConfigParseError(DeploymentError):
    """The active upstream port could not be determined from the proxy config."""
    exit_code = 3
    stage = "port allocation"


class LaunchError(DeploymentError):
    """The container runtime rejected the new container."""
    exit_code = 4
    stage = "launch"


class HealthCheckTimeout(DeploymentError):
    """The new instance never became ready before the deadline."""
    exit_code = 5
    stage = "health probe"


class ReloadError(DeploymentError):
    """The proxy rejected the rewritten config or the reload signal failed."""
    exit_code = 6
    stage = "traffic switch"


class DeploymentLockedError(DeploymentError):
    """Another deployment holds the lock for this target."""
    exit_code = 7
    stage = "lock"


class ReaperError(DeploymentError):
    """The previous container could not be stopped or removed.

    Never fatal: traffic has already moved off the old instance.
    """
    stage = "reap"
