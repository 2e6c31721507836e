"""Data models for the repository migrator."""

from .enums import (  # noqa: F401
    ErrorType,
    MigrationPhase,
    PhaseProgress,
    RepoStatus,
)
from .remote import (  # noqa: F401
    Batch,
    BatchPlan,
    MigrateOptions,
    SourceRepo,
    SyncResult,
    TargetRepo,
)
from .state import (  # noqa: F401
    STATE_VERSION,
    MigrationState,
    RepoState,
    utc_now,
)

__all__ = [
    # Enums
    "ErrorType",
    "MigrationPhase",
    "PhaseProgress",
    "RepoStatus",
    # Remote provider models
    "Batch",
    "BatchPlan",
    "MigrateOptions",
    "SourceRepo",
    "SyncResult",
    "TargetRepo",
    # State models
    "STATE_VERSION",
    "MigrationState",
    "RepoState",
    "utc_now",
]
