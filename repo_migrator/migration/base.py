"""Abstract collaborators the migration core depends on."""

from abc import ABC, abstractmethod

from ..models.remote import MigrateOptions, SourceRepo, SyncResult


class RemoteLister(ABC):
    """Enumerates repositories on the source provider."""

    @abstractmethod
    async def list_repos(self) -> list[SourceRepo]:
        """List every repository eligible for migration."""

    @abstractmethod
    async def get_repo(self, name: str) -> SourceRepo | None:
        """Fetch one repository, or None if the source does not have it."""


class ApiMigrator(ABC):
    """Creates repositories on the target through the provider's migration API."""

    @abstractmethod
    async def exists(self, name: str) -> bool:
        """Check whether the target already has a repository with this name."""

    @abstractmethod
    async def migrate(self, repo: SourceRepo, options: MigrateOptions) -> None:
        """Import a repository with its issues, pull requests and metadata.

        Raises:
            ApiError: If the target rejects the migration
        """


class ContentSyncer(ABC):
    """Copies all branches and tags from the source to the target."""

    @abstractmethod
    async def sync(self, repo: SourceRepo) -> SyncResult:
        """Synchronize repository content.

        Raises:
            MigratorError: If the content could not be synchronized
        """
