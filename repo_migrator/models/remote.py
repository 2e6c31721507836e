"""Models exchanged with the source and target hosting providers."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class SourceRepo(BaseModel):
    """A repository as listed by the source provider."""

    name: str
    full_name: str = ""
    clone_url: str
    description: str | None = None
    is_private: bool = False
    default_branch: str = "main"
    has_wiki: bool = False
    has_issues: bool = True
    pushed_at: datetime | None = None

    @field_validator("pushed_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class TargetRepo(BaseModel):
    """A repository on the target provider."""

    id: int | None = None
    name: str
    full_name: str = ""
    clone_url: str = ""
    html_url: str = ""
    updated_at: str | None = None


class MigrateOptions(BaseModel):
    """Which repository features the target should import."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    issues: bool = True
    pull_requests: bool = True
    labels: bool = True
    milestones: bool = True
    releases: bool = True
    wiki: bool | None = None  # None follows the source repo's has_wiki


class SyncResult(BaseModel):
    """Outcome of a content (branch and tag) sync."""

    success: bool
    items_processed: int = 0
    error: str | None = None


class Batch(BaseModel):
    """A slice of the work list handed to one process instance."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    batch_number: int
    repos: list[str] = Field(default_factory=list)


class BatchPlan(BaseModel):
    """Plan file written by discovery for the sharded migration jobs."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timestamp: datetime
    total_repos: int
    total_batches: int
    batches_to_run: int
    batches: list[Batch] = Field(default_factory=list)
    stats: dict[str, int] = Field(default_factory=dict)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
