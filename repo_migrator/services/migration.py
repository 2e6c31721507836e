"""
Repository Migration Service

Processes a run's work list one repository at a time through the phase
runner and summarises the outcome.
"""

from dataclasses import dataclass, field

import structlog

from ..core.config_loader import MigrationConfig
from ..migration.base import RemoteLister
from ..migration.classifier import classify_failure, failure_from_exception
from ..migration.runner import MigrationResult, PhaseRunner
from ..migration.selector import select_work
from ..models.enums import RepoStatus
from ..state.store import StateStore

SOURCE_MISSING_MESSAGE = "Repository not found on source"


@dataclass
class RunSummary:
    """Outcome of one migration run."""

    results: list[MigrationResult] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def successful(self) -> list[MigrationResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[MigrationResult]:
        return [r for r in self.results if not r.success]

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


class MigrationService:
    """Service running the phase runner over the selected repositories."""

    def __init__(
        self,
        lister: RemoteLister,
        runner: PhaseRunner,
        store: StateStore,
        config: MigrationConfig,
    ):
        self.lister = lister
        self.runner = runner
        self.store = store
        self.config = config
        self.logger = structlog.get_logger().bind(component="migration_service")

    def select(self, repo_names: list[str] | None = None) -> list[str]:
        """Explicit names win; otherwise pick from the state snapshot."""
        if repo_names:
            self.logger.info("Processing repos from REPO_LIST", count=len(repo_names))
            return list(repo_names)

        names = select_work(
            self.store.state,
            max_count=self.config.max_parallel_repos,
            include_sync=self.config.sync_enabled,
            inactivity_cutoff_days=self.config.exclude_inactive_days,
            max_attempts=self.config.max_attempts,
        )
        self.logger.info("Processing repos from state", count=len(names))
        return names

    async def run(self, repo_names: list[str] | None = None) -> RunSummary:
        """Process repositories strictly one after another."""
        summary = RunSummary()
        self.store.recover_interrupted()

        names = self.select(repo_names)
        if not names:
            self.logger.info("No repos to migrate")
            return summary

        for name in names:
            result = await self._process(name, summary)
            if result is not None:
                summary.results.append(result)

        self.logger.info(
            "Migration run finished",
            processed=len(summary.results),
            successful=len(summary.successful),
            failed=len(summary.failed),
            missing=len(summary.missing),
        )
        for result in summary.failed:
            self.logger.warning("Repo failed", repo=result.repo_name, error=result.error)
        return summary

    async def _process(self, name: str, summary: RunSummary) -> MigrationResult | None:
        record = self.store.get(name)
        completed = record is not None and record.status is RepoStatus.COMPLETED

        try:
            repo = await self.lister.get_repo(name)
        except Exception as e:
            failure = failure_from_exception(e)
            error_type = classify_failure(failure)
            if completed:
                # A failed resync lookup leaves the completed status alone
                self.store.upsert(name, error=failure.message, error_type=error_type)
            else:
                self.store.mark_failed(name, failure.message, error_type)
            self.store.save()
            self.logger.error("Failed to fetch source repo", repo=name, error=failure.message)
            return MigrationResult(repo_name=name, error=failure.message, error_type=error_type)

        if repo is None:
            summary.missing.append(name)
            if completed:
                self.logger.warning("Completed repo no longer on source, skipping resync", repo=name)
                return None
            self.logger.error("Repo not found on source", repo=name)
            self.store.mark_skipped(name, SOURCE_MISSING_MESSAGE)
            self.store.save()
            return None

        if completed:
            return await self.runner.resync(repo)
        return await self.runner.run(repo)
