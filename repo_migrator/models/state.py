"""Persisted migration state models.

The on-disk snapshot is a JSON object with camelCase keys::

    {
      "version": 1,
      "sourceOrg": "...",
      "targetOrg": "...",
      "lastDiscovery": "2024-01-01T00:00:00Z",
      "totalRepos": 2,
      "repos": {
        "name": {
          "name": "name",
          "status": "failed",
          "attemptCount": 1,
          "phases": {"apiMigration": true, "branchSync": false},
          "lastAttempt": "...",
          "error": "...",
          "errorType": "transient"
        }
      }
    }

Phase progress is held as a single ordered ``PhaseProgress`` value; the
``phases`` booleans are derived from it when dumping and parsed back into it
when loading, so a record can never claim branch sync without API migration.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .enums import ErrorType, MigrationPhase, PhaseProgress, RepoStatus

STATE_VERSION = 1


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class RepoState(BaseModel):
    """Migration progress of one repository."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    status: RepoStatus = RepoStatus.PENDING
    progress: PhaseProgress = Field(default=PhaseProgress.NOT_STARTED, exclude=True)
    attempt_count: int = Field(default=0, ge=0)
    last_attempt: datetime | None = None
    completed_at: datetime | None = None
    last_synced_at: datetime | None = None
    remote_last_modified: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "remoteLastModified", "githubPushedAt", "remote_last_modified"
        ),
        serialization_alias="remoteLastModified",
    )
    error: str | None = None
    error_type: ErrorType | None = None

    @model_validator(mode="before")
    @classmethod
    def _progress_from_phases(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "phases" not in data:
            return data
        data = dict(data)
        phases = data.pop("phases")
        if "progress" in data:
            return data
        if phases is None:
            phases = {}
        if not isinstance(phases, dict):
            raise ValueError("phases must be an object")

        api_done = bool(phases.get("apiMigration", phases.get("api_migration", False)))
        sync_done = bool(phases.get("branchSync", phases.get("branch_sync", False)))
        if api_done and sync_done:
            data["progress"] = PhaseProgress.BRANCHES_SYNCED
        elif api_done:
            data["progress"] = PhaseProgress.API_MIGRATED
        else:
            # branchSync without apiMigration is not a reachable state; redo both
            data["progress"] = PhaseProgress.NOT_STARTED
        return data

    @field_validator("last_attempt", "completed_at", "last_synced_at", "remote_last_modified")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @model_validator(mode="after")
    def _completed_implies_all_phases(self) -> "RepoState":
        if self.status is RepoStatus.COMPLETED:
            self.progress = PhaseProgress.BRANCHES_SYNCED
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def phases(self) -> dict[str, bool]:
        """Boolean phase flags kept for the persisted format."""
        return {
            MigrationPhase.API_MIGRATION.value: self.phase_done(MigrationPhase.API_MIGRATION),
            MigrationPhase.BRANCH_SYNC.value: self.phase_done(MigrationPhase.BRANCH_SYNC),
        }

    def phase_done(self, phase: MigrationPhase) -> bool:
        return self.progress >= PhaseProgress.after(phase)


class MigrationState(BaseModel):
    """Full snapshot of a migration run."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: int = STATE_VERSION
    source_org: str
    target_org: str
    last_discovery: datetime | None = None
    total_repos: int = 0
    repos: dict[str, RepoState] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _fill_repo_names(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("repos"), dict):
            data = dict(data)
            repos = {}
            for name, record in data["repos"].items():
                if isinstance(record, dict) and "name" not in record:
                    record = {**record, "name": name}
                repos[name] = record
            data["repos"] = repos
        return data

    @field_validator("last_discovery")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_json(self) -> str:
        """Serialize in the persisted camelCase format."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=2)
