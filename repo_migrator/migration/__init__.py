"""Migration engine: error classification, work selection and phase execution."""

from .base import ApiMigrator, ContentSyncer, RemoteLister  # noqa: F401
from .branch_sync import GitMirrorSyncer  # noqa: F401
from .classifier import Failure, FailureKind, classify, classify_failure  # noqa: F401
from .runner import MigrationResult, PhaseRunner  # noqa: F401
from .selector import create_batches, select_work  # noqa: F401
from .sync_detector import needs_sync  # noqa: F401

__all__ = [
    "ApiMigrator",
    "ContentSyncer",
    "RemoteLister",
    "GitMirrorSyncer",
    "Failure",
    "FailureKind",
    "classify",
    "classify_failure",
    "MigrationResult",
    "PhaseRunner",
    "create_batches",
    "select_work",
    "needs_sync",
]
