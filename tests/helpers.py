"""In-memory collaborators and builders shared by the tests."""

from datetime import datetime, timezone

from repo_migrator.migration.base import ApiMigrator, ContentSyncer, RemoteLister
from repo_migrator.models import MigrateOptions, SourceRepo, SyncResult


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_repo(name: str, pushed_at: datetime | None = NOW, has_wiki: bool = False) -> SourceRepo:
    """Build a source repository the way the GitHub client would."""
    return SourceRepo(
        name=name,
        full_name=f"source-org/{name}",
        clone_url=f"https://github.com/source-org/{name}.git",
        has_wiki=has_wiki,
        pushed_at=pushed_at,
    )


class FakeLister(RemoteLister):
    """In-memory source provider."""

    def __init__(self, repos: list[SourceRepo] | None = None):
        self.repos = {repo.name: repo for repo in repos or []}
        self.errors: dict[str, Exception] = {}

    async def list_repos(self) -> list[SourceRepo]:
        return list(self.repos.values())

    async def get_repo(self, name: str) -> SourceRepo | None:
        if name in self.errors:
            raise self.errors[name]
        return self.repos.get(name)


class FakeMigrator(ApiMigrator):
    """Records API migrations; optionally fails with a given error."""

    def __init__(self, existing: set[str] | None = None, error: Exception | None = None):
        self.existing = set(existing or ())
        self.error = error
        self.migrated: list[str] = []
        self.options: list[MigrateOptions] = []

    async def exists(self, name: str) -> bool:
        return name in self.existing

    async def migrate(self, repo: SourceRepo, options: MigrateOptions) -> None:
        if self.error is not None:
            raise self.error
        self.migrated.append(repo.name)
        self.options.append(options)
        self.existing.add(repo.name)


class FakeSyncer(ContentSyncer):
    """Records branch syncs; optionally fails with a given error."""

    def __init__(self, error: Exception | None = None, refs: int = 3):
        self.error = error
        self.refs = refs
        self.synced: list[str] = []

    async def sync(self, repo: SourceRepo) -> SyncResult:
        if self.error is not None:
            raise self.error
        self.synced.append(repo.name)
        return SyncResult(success=True, items_processed=self.refs)
