"""Durable per-repository migration state backed by a JSON snapshot file."""

import json
import os
import tempfile
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from ..core.exceptions import StateError
from ..models.enums import ErrorType, MigrationPhase, PhaseProgress, RepoStatus
from ..models.remote import SourceRepo
from ..models.state import STATE_VERSION, MigrationState, RepoState, utc_now

logger = structlog.get_logger()

INTERRUPTED_MESSAGE = "Interrupted before completion"


class StateStore:
    """Owns the migration snapshot for the duration of a run.

    Every mutation happens in memory; callers persist with ``save()`` after
    each state-relevant change so a crash loses at most one in-flight phase.
    """

    def __init__(self, state_path: Path | str, source_org: str, target_org: str):
        self.state_path = Path(state_path)
        self.source_org = source_org
        self.target_org = target_org
        self.state = self._fresh_state()
        self.logger = logger.bind(component="state_store", path=str(self.state_path))

    def _fresh_state(self) -> MigrationState:
        return MigrationState(source_org=self.source_org, target_org=self.target_org)

    def load(self) -> MigrationState:
        """Load the snapshot, falling back to a fresh state on any problem."""
        if not self.state_path.exists():
            self.logger.info("No existing state file, starting fresh")
            self.state = self._fresh_state()
            return self.state

        try:
            self.state = read_state_file(self.state_path)
        except StateError as e:
            self.logger.warning("Failed to load state file, starting fresh", error=str(e))
            self.state = self._fresh_state()
            return self.state

        if self.state.version > STATE_VERSION:
            self.logger.warning(
                "State file written by a newer version",
                file_version=self.state.version,
                supported_version=STATE_VERSION,
            )
        self.logger.info("Loaded state", repos=len(self.state.repos))
        return self.state

    def save(self, state: MigrationState | None = None) -> None:
        """Persist the whole snapshot, replacing the previous file atomically."""
        if state is not None:
            self.state = state
        write_state_file(self.state_path, self.state)

    def get(self, name: str) -> RepoState | None:
        return self.state.repos.get(name)

    def upsert(self, name: str, **partial: Any) -> RepoState:
        """Merge-patch a repository record, creating it as pending if absent.

        Phase progress and attempt count never move backwards through this
        method.
        """
        current = self.state.repos.get(name)
        if current is None:
            current = RepoState(name=name)

        data = current.model_dump()
        data.pop("phases", None)
        data["progress"] = current.progress
        data.update(partial)
        data["name"] = name

        updated = RepoState.model_validate(data)
        if updated.progress < current.progress:
            updated.progress = current.progress
        if updated.attempt_count < current.attempt_count:
            updated.attempt_count = current.attempt_count

        self.state.repos[name] = updated
        return updated

    # Transitions

    def mark_in_progress(self, name: str) -> RepoState:
        current = self.get(name)
        attempts = current.attempt_count if current else 0
        return self.upsert(
            name,
            status=RepoStatus.IN_PROGRESS,
            last_attempt=utc_now(),
            attempt_count=attempts + 1,
        )

    def mark_phase_complete(self, name: str, phase: MigrationPhase) -> RepoState:
        current = self.get(name)
        progress = current.progress if current else PhaseProgress.NOT_STARTED
        return self.upsert(name, progress=max(progress, PhaseProgress.after(phase)))

    def mark_completed(self, name: str) -> RepoState:
        now = utc_now()
        return self.upsert(
            name,
            status=RepoStatus.COMPLETED,
            progress=PhaseProgress.BRANCHES_SYNCED,
            completed_at=now,
            last_synced_at=now,
            error=None,
            error_type=None,
        )

    def mark_failed(self, name: str, error: str, error_type: ErrorType) -> RepoState:
        return self.upsert(name, status=RepoStatus.FAILED, error=error, error_type=error_type)

    def mark_skipped(self, name: str, reason: str) -> RepoState:
        return self.upsert(name, status=RepoStatus.SKIPPED, error=reason, error_type=None)

    def mark_synced(self, name: str, remote_last_modified: datetime | None = None) -> RepoState:
        """Record a successful resync of an already completed repository.

        The source push time seen during the resync replaces the stored one
        when given.
        """
        partial: dict[str, Any] = {"last_synced_at": utc_now(), "error": None, "error_type": None}
        if remote_last_modified is not None:
            partial["remote_last_modified"] = remote_last_modified
        return self.upsert(name, **partial)

    def recover_interrupted(self) -> list[str]:
        """Turn records left in_progress by a killed run into retryable failures."""
        interrupted = [
            name
            for name, repo in self.state.repos.items()
            if repo.status is RepoStatus.IN_PROGRESS
        ]
        for name in interrupted:
            self.mark_failed(name, INTERRUPTED_MESSAGE, ErrorType.TRANSIENT)
        if interrupted:
            self.logger.warning("Recovered interrupted repos", repos=interrupted)
        return interrupted

    # Discovery

    def add_repos(self, repos: Iterable[SourceRepo | str]) -> None:
        """Record discovered repositories.

        Unseen names are added as pending; known ones only get their remote
        last-modified timestamp refreshed.
        """
        for repo in repos:
            if isinstance(repo, str):
                name, pushed_at = repo, None
            else:
                name, pushed_at = repo.name, repo.pushed_at

            existing = self.state.repos.get(name)
            if existing is None:
                self.state.repos[name] = RepoState(name=name, remote_last_modified=pushed_at)
            elif pushed_at is not None:
                existing.remote_last_modified = pushed_at

        self.state.total_repos = len(self.state.repos)
        self.state.last_discovery = utc_now()

    # Queries

    def _names_with(self, status: RepoStatus) -> list[str]:
        return [name for name, repo in self.state.repos.items() if repo.status is status]

    def pending(self) -> list[str]:
        return self._names_with(RepoStatus.PENDING)

    def failed(self) -> list[str]:
        return self._names_with(RepoStatus.FAILED)

    def retryable(self) -> list[str]:
        return [
            name
            for name, repo in self.state.repos.items()
            if repo.status is RepoStatus.FAILED
            and repo.error_type in (ErrorType.TRANSIENT, ErrorType.RECOVERABLE)
        ]

    def stats(self, inactivity_cutoff_days: int = 0, now: datetime | None = None) -> dict[str, int]:
        """Count repositories per status plus those needing a resync."""
        from ..migration.sync_detector import needs_sync  # Import at use to avoid circular imports

        repos = list(self.state.repos.values())
        return {
            "total": len(repos),
            "pending": sum(r.status is RepoStatus.PENDING for r in repos),
            "inProgress": sum(r.status is RepoStatus.IN_PROGRESS for r in repos),
            "completed": sum(r.status is RepoStatus.COMPLETED for r in repos),
            "failed": sum(r.status is RepoStatus.FAILED for r in repos),
            "skipped": sum(r.status is RepoStatus.SKIPPED for r in repos),
            "needingSync": sum(needs_sync(r, inactivity_cutoff_days, now=now) for r in repos),
        }


def read_state_file(path: Path) -> MigrationState:
    """Parse and validate a snapshot file.

    Raises:
        StateError: If the file cannot be read, is not JSON or fails validation
    """
    try:
        content = path.read_text(encoding="utf-8")
        return MigrationState.model_validate(json.loads(content))
    except (OSError, ValueError, ValidationError) as e:
        raise StateError(f"Invalid state file {path}: {e}") from e


def write_state_file(path: Path, state: MigrationState) -> None:
    """Write a snapshot through a temporary file and an atomic rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(state.to_json())
            f.write("\n")
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        Path(tmp_name).unlink(missing_ok=True)
        raise StateError(f"Failed to write state file {path}: {e}") from e
