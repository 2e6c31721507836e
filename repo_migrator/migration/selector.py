"""Work selection: which repositories a run should process, and in what order."""

from datetime import datetime

from ..models.enums import ErrorType, RepoStatus
from ..models.remote import Batch
from ..models.state import MigrationState, RepoState
from .sync_detector import needs_sync

RETRYABLE_ERROR_TYPES = (ErrorType.TRANSIENT, ErrorType.RECOVERABLE)


def is_retryable(repo: RepoState, max_attempts: int = 0) -> bool:
    """A failed repo is retried unless its failure is permanent or it ran out of attempts."""
    if repo.status is not RepoStatus.FAILED or repo.error_type not in RETRYABLE_ERROR_TYPES:
        return False
    return max_attempts <= 0 or repo.attempt_count < max_attempts


def select_work(
    state: MigrationState,
    max_count: int,
    include_sync: bool = False,
    inactivity_cutoff_days: int = 0,
    max_attempts: int = 0,
    now: datetime | None = None,
) -> list[str]:
    """Build the ordered work list for one run.

    Priority order: retryable failures, then pending repos, then (when
    ``include_sync`` is set) completed repos that drifted on the source.
    Each group keeps the snapshot's insertion order.

    Args:
        state: Current migration snapshot
        max_count: Maximum number of repos to return
        include_sync: Also select completed repos needing a resync
        inactivity_cutoff_days: Passed to the sync detector (0 disables)
        max_attempts: Retry ceiling for failed repos (0 means unlimited)
        now: Reference time for the sync detector

    Returns:
        Repository names to process, at most ``max_count`` long
    """
    if max_count <= 0:
        return []

    repos = list(state.repos.items())
    retryable = [name for name, r in repos if is_retryable(r, max_attempts)]
    pending = [name for name, r in repos if r.status is RepoStatus.PENDING]
    syncing = (
        [name for name, r in repos if needs_sync(r, inactivity_cutoff_days, now=now)]
        if include_sync
        else []
    )

    return (retryable + pending + syncing)[:max_count]


def create_batches(repos: list[str], batch_size: int) -> list[Batch]:
    """Split a work list into consecutive batches numbered from 1."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [
        Batch(batch_number=index // batch_size + 1, repos=repos[index : index + batch_size])
        for index in range(0, len(repos), batch_size)
    ]
