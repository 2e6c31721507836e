"""
Repository Discovery Service

Enumerates source repositories, records them in the migration state and
plans the batches the sharded migration jobs will run.
"""

from datetime import datetime
from pathlib import Path

import structlog

from ..core.config_loader import MigrationConfig
from ..migration.base import RemoteLister
from ..migration.selector import create_batches, select_work
from ..migration.sync_detector import inactivity_cutoff
from ..models.enums import RepoStatus
from ..models.remote import BatchPlan, SourceRepo
from ..models.state import utc_now
from ..state.store import StateStore
from .outputs import write_github_outputs

INACTIVE_PREFIX = "Inactive:"


class DiscoveryService:
    """Service for discovering repositories and planning migration batches."""

    def __init__(self, lister: RemoteLister, store: StateStore, config: MigrationConfig):
        self.lister = lister
        self.store = store
        self.config = config
        self.logger = structlog.get_logger().bind(component="discovery")

    def filter_repos(self, repos: list[SourceRepo], now: datetime | None = None) -> list[SourceRepo]:
        """Apply include-only, exclude and inactivity filters in that order."""
        if self.config.include_only_repos:
            include = set(self.config.include_only_repos)
            repos = [repo for repo in repos if repo.name in include]
            self.logger.info("Filtered repos (include list)", count=len(repos))

        if self.config.exclude_repos:
            exclude = set(self.config.exclude_repos)
            repos = [repo for repo in repos if repo.name not in exclude]
            self.logger.info("Filtered repos (exclude list)", count=len(repos))

        cutoff = inactivity_cutoff(self.config.exclude_inactive_days, now)
        if cutoff is not None:
            before = len(repos)
            repos = [repo for repo in repos if repo.pushed_at is not None and repo.pushed_at >= cutoff]
            self.logger.info(
                "Filtered inactive repos",
                count=len(repos),
                excluded=before - len(repos),
                inactive_days=self.config.exclude_inactive_days,
            )
        return repos

    async def discover(self, now: datetime | None = None) -> list[str]:
        """Discover source repositories and record them in the state.

        When an inactivity cutoff is configured, repos still pending in the
        state that are no longer active are marked skipped, and repos skipped
        for inactivity that became active again are queued as pending.

        Returns:
            Names of the repositories that passed the filters
        """
        self.logger.info("Discovering repos from source")
        repos = self.filter_repos(await self.lister.list_repos(), now=now)
        names = [repo.name for repo in repos]

        if self.config.exclude_inactive_days > 0:
            active = set(names)
            reason = f"{INACTIVE_PREFIX} no commits in last {self.config.exclude_inactive_days} days"
            skipped = [name for name in self.store.pending() if name not in active]
            for name in skipped:
                self.store.mark_skipped(name, reason)
            if skipped:
                self.logger.info("Marked inactive pending repos as skipped", count=len(skipped))

            revived = [
                name
                for name in names
                if (record := self.store.get(name)) is not None
                and record.status is RepoStatus.SKIPPED
                and (record.error or "").startswith(INACTIVE_PREFIX)
            ]
            for name in revived:
                self.store.upsert(name, status=RepoStatus.PENDING, error=None)
            if revived:
                self.logger.info("Re-queued repos that became active again", count=len(revived))

        self.store.add_repos(repos)
        self.store.save()
        return names

    def plan(self) -> BatchPlan:
        """Select this run's work and cut it into batches."""
        config = self.config
        work = select_work(
            self.store.state,
            max_count=config.max_batches_per_run * config.batch_size,
            include_sync=config.sync_enabled,
            inactivity_cutoff_days=config.exclude_inactive_days,
            max_attempts=config.max_attempts,
        )
        batches = create_batches(work, config.batch_size)
        batches_to_run = batches[: config.max_batches_per_run]

        self.logger.info(
            "Planned batches",
            repos=len(work),
            total_batches=len(batches),
            batches_to_run=len(batches_to_run),
        )
        return BatchPlan(
            timestamp=utc_now(),
            total_repos=len(work),
            total_batches=len(batches),
            batches_to_run=len(batches_to_run),
            batches=batches_to_run,
            stats=self.store.stats(config.exclude_inactive_days),
        )

    def write_plan(self, plan: BatchPlan, output_path: Path | str, github_output: str | None = None) -> None:
        """Write the plan file and, under GitHub Actions, the job outputs."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(plan.to_json() + "\n", encoding="utf-8")
        self.logger.info("Batch info written", path=str(output_path))

        matrix = [
            {"batch_number": batch.batch_number, "repos": ",".join(batch.repos)}
            for batch in plan.batches
        ]
        write_github_outputs(
            github_output,
            {
                "batch_count": plan.batches_to_run,
                "batch_matrix": matrix,
                "total_repos": plan.total_repos,
            },
        )
