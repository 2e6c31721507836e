"""
Repository Migrator Services

Service layer tying the migration core to the hosting provider clients.
"""

from .cleanup import CleanupService  # noqa: F401
from .discovery import DiscoveryService  # noqa: F401
from .migration import MigrationService, RunSummary  # noqa: F401

__all__ = [
    "CleanupService",
    "DiscoveryService",
    "MigrationService",
    "RunSummary",
]
