"""Drift detection for repositories that already finished migrating."""

from datetime import datetime, timedelta

from ..models.enums import RepoStatus
from ..models.state import RepoState, utc_now


def inactivity_cutoff(inactivity_cutoff_days: int, now: datetime | None = None) -> datetime | None:
    """Oldest remote activity still considered active, or None when disabled."""
    if inactivity_cutoff_days <= 0:
        return None
    return (now or utc_now()) - timedelta(days=inactivity_cutoff_days)


def needs_sync(repo: RepoState, inactivity_cutoff_days: int = 0, now: datetime | None = None) -> bool:
    """Whether a completed repository changed on the source since its last sync.

    Args:
        repo: Repository record
        inactivity_cutoff_days: Repos with no remote activity within this many
            days are never resynced (0 disables the check)
        now: Reference time, defaults to the current UTC time

    Returns:
        True if the branch sync should run again
    """
    if repo.status is not RepoStatus.COMPLETED:
        return False

    cutoff = inactivity_cutoff(inactivity_cutoff_days, now)
    if cutoff is not None and repo.remote_last_modified is not None:
        if repo.remote_last_modified < cutoff:
            return False

    if repo.remote_last_modified is None:
        return False

    # Legacy records completed before sync tracking existed
    if repo.last_synced_at is None:
        return True

    return repo.remote_last_modified > repo.last_synced_at
