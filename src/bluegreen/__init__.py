"""Blue-green zero-downtime deployments for a single Docker host behind Nginx."""

__version__ = "0.3.0"
