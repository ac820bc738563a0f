from .client import MigrationClient, MigrationClientError
from .core.dashboard import Dashboard

__all__ = ["Dashboard", "MigrationClient", "MigrationClientError"]
