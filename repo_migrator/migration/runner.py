"""Per-repository two-phase migration state machine."""

from dataclasses import dataclass

import structlog

from ..core.exceptions import MigratorError
from ..models.enums import ErrorType, MigrationPhase
from ..models.remote import MigrateOptions, SourceRepo
from ..state.store import StateStore
from .base import ApiMigrator, ContentSyncer
from .classifier import classify_failure, failure_from_exception, is_conflict

logger = structlog.get_logger()


@dataclass
class MigrationResult:
    """Outcome of processing one repository in this run."""

    repo_name: str
    success: bool = False
    api_migration: bool = False
    branch_sync: bool = False
    items_processed: int = 0
    error: str | None = None
    error_type: ErrorType | None = None


class PhaseRunner:
    """Drives one repository through API migration and branch sync.

    State is saved on entry and after every phase, so a killed process loses
    at most the phase that was running. A phase already recorded as done is
    never run again.
    """

    def __init__(
        self,
        store: StateStore,
        migrator: ApiMigrator,
        syncer: ContentSyncer,
        migrate_options: MigrateOptions | None = None,
    ):
        self.store = store
        self.migrator = migrator
        self.syncer = syncer
        self.migrate_options = migrate_options or MigrateOptions()
        self.logger = logger.bind(component="phase_runner")

    def _options_for(self, repo: SourceRepo) -> MigrateOptions:
        if self.migrate_options.wiki is None:
            return self.migrate_options.model_copy(update={"wiki": repo.has_wiki})
        return self.migrate_options

    async def run(self, repo: SourceRepo) -> MigrationResult:
        """Migrate a repository, resuming after whichever phases already succeeded."""
        name = repo.name
        log = self.logger.bind(repo=name)
        result = MigrationResult(repo_name=name)

        state = self.store.mark_in_progress(name)
        self.store.save()
        log.info("Starting migration", attempt=state.attempt_count)

        # Phase 1: API migration (issues, pull requests, labels, ...)
        if state.phase_done(MigrationPhase.API_MIGRATION):
            log.info("API migration already completed, skipping")
        elif not await self._migrate_api(repo, result):
            return result
        result.api_migration = True

        # Phase 2: branch sync (mirror push of all refs)
        if state.phase_done(MigrationPhase.BRANCH_SYNC):
            log.info("Branch sync already completed, skipping")
        elif not await self._sync_branches(repo, result):
            return result
        result.branch_sync = True

        self.store.mark_completed(name)
        self.store.save()
        result.success = True
        log.info("Migration completed", refs=result.items_processed)
        return result

    async def resync(self, repo: SourceRepo) -> MigrationResult:
        """Push new source content for a repository that already completed.

        Phase flags stay set and the status stays completed; a failure is
        recorded on the record so it is visible and the repo is picked up
        again by the next resync selection.
        """
        name = repo.name
        log = self.logger.bind(repo=name)
        result = MigrationResult(repo_name=name, api_migration=True)

        log.info("Resyncing completed repository")
        try:
            sync_result = await self.syncer.sync(repo)
            if not sync_result.success:
                raise MigratorError(sync_result.error or "Branch sync failed")
        except Exception as e:
            failure = failure_from_exception(e)
            self._record_error(result, failure.message, classify_failure(failure))
            self.store.upsert(name, error=result.error, error_type=result.error_type)
            self.store.save()
            log.error("Resync failed", error=result.error, error_type=result.error_type.value)
            return result

        self.store.mark_synced(name, repo.pushed_at)
        self.store.save()
        result.branch_sync = True
        result.items_processed = sync_result.items_processed
        result.success = True
        log.info("Resync completed", refs=sync_result.items_processed)
        return result

    async def _migrate_api(self, repo: SourceRepo, result: MigrationResult) -> bool:
        name = repo.name
        log = self.logger.bind(repo=name, phase=MigrationPhase.API_MIGRATION.value)

        try:
            if await self.migrator.exists(name):
                log.info("Repository already exists on target, skipping API migration")
            else:
                await self.migrator.migrate(repo, self._options_for(repo))
                log.info("API migration completed")
        except Exception as e:
            failure = failure_from_exception(e)
            if is_conflict(failure):
                log.info("Repository already exists, continuing to branch sync")
            else:
                return self._fail(result, failure.message, classify_failure(failure))

        self.store.mark_phase_complete(name, MigrationPhase.API_MIGRATION)
        self.store.save()
        return True

    async def _sync_branches(self, repo: SourceRepo, result: MigrationResult) -> bool:
        name = repo.name
        try:
            sync_result = await self.syncer.sync(repo)
            if not sync_result.success:
                raise MigratorError(sync_result.error or "Branch sync failed")
        except Exception as e:
            failure = failure_from_exception(e)
            return self._fail(result, failure.message, classify_failure(failure))

        result.items_processed = sync_result.items_processed
        self.store.mark_phase_complete(name, MigrationPhase.BRANCH_SYNC)
        self.store.save()
        return True

    def _fail(self, result: MigrationResult, error: str, error_type: ErrorType) -> bool:
        self._record_error(result, error, error_type)
        self.store.mark_failed(result.repo_name, error, error_type)
        self.store.save()
        self.logger.error(
            "Migration failed",
            repo=result.repo_name,
            error=error,
            error_type=error_type.value,
        )
        return False

    @staticmethod
    def _record_error(result: MigrationResult, error: str, error_type: ErrorType) -> None:
        result.error = error
        result.error_type = error_type
