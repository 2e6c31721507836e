"""Merge partial snapshots produced by sharded runs into the canonical state."""

from pathlib import Path

import structlog

from ..core.exceptions import StateError
from ..models.enums import RepoStatus
from ..models.state import MigrationState, RepoState
from .store import StateStore, read_state_file

logger = structlog.get_logger()

BATCH_STATE_PATTERN = "batch-*.json"


def should_replace(existing: RepoState | None, incoming: RepoState) -> bool:
    """Decide whether an incoming record wins over the canonical one.

    A completed outcome always wins; otherwise the more recent attempt wins.
    An incoming record without ``last_attempt`` never wins on recency.
    """
    if existing is None:
        return True
    if incoming.status is RepoStatus.COMPLETED:
        return True
    if incoming.last_attempt is None:
        return False
    return existing.last_attempt is None or incoming.last_attempt > existing.last_attempt


def merge(canonical: MigrationState, partial: MigrationState) -> MigrationState:
    """Fold a partial snapshot into ``canonical`` in place and return it."""
    for name, incoming in partial.repos.items():
        if should_replace(canonical.repos.get(name), incoming):
            canonical.repos[name] = incoming.model_copy(deep=True)

    canonical.total_repos = len(canonical.repos)
    return canonical


def merge_directory(
    store: StateStore,
    directory: Path | str,
    pattern: str = BATCH_STATE_PATTERN,
) -> list[str]:
    """Merge every partial snapshot file in ``directory`` into the store's state.

    Files are merged in sorted name order. A file that cannot be read or
    validated is logged and skipped. The store is not saved here.

    Returns:
        Names of the files that were merged
    """
    directory = Path(directory)
    log = logger.bind(component="state_merger", directory=str(directory))

    if not directory.is_dir():
        log.info("No batch states directory found, nothing to merge")
        return []

    files = sorted(directory.glob(pattern))
    log.info("Found batch state files", count=len(files))

    merged: list[str] = []
    for path in files:
        try:
            partial = read_state_file(path)
        except StateError as e:
            log.error("Failed to merge batch state", file=path.name, error=str(e))
            continue

        merge(store.state, partial)
        merged.append(path.name)
        log.info("Merged batch state", file=path.name, repos=len(partial.repos))

    return merged
