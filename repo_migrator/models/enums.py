"""Enum definitions for migration state."""

from enum import Enum


class RepoStatus(str, Enum):
    """Lifecycle status of a single repository migration."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ErrorType(str, Enum):
    """Retry class assigned to a recorded failure."""

    TRANSIENT = "transient"  # Network issues, rate limits - auto-retry
    RECOVERABLE = "recoverable"  # Conflicts, partial migration - retried
    PERMANENT = "permanent"  # Missing repo, permissions - manual action


class MigrationPhase(str, Enum):
    """The two ordered migration phases."""

    API_MIGRATION = "apiMigration"
    BRANCH_SYNC = "branchSync"


class PhaseProgress(int, Enum):
    """How far a repository got through the ordered phases."""

    NOT_STARTED = 0
    API_MIGRATED = 1
    BRANCHES_SYNCED = 2

    @classmethod
    def after(cls, phase: MigrationPhase) -> "PhaseProgress":
        """Progress reached once ``phase`` has succeeded."""
        if phase is MigrationPhase.API_MIGRATION:
            return cls.API_MIGRATED
        return cls.BRANCHES_SYNCED
