"""
Target Cleanup Service

Removes repositories from the target organization that are inactive or
stuck in Gitea's "migrating" state after an interrupted API migration.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

import structlog

from ..clients.codeberg import CodebergClient
from ..core.exceptions import ApiError
from ..models.state import utc_now


@dataclass
class CleanupReport:
    """What a cleanup pass found and did."""

    checked: int = 0
    active: list[str] = field(default_factory=list)
    no_commits: list[str] = field(default_factory=list)
    to_delete: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    dry_run: bool = False

    def as_outputs(self) -> dict[str, object]:
        return {
            "deleted_count": len(self.deleted),
            "failed_count": len(self.failed),
            "deleted_repos": ",".join(self.deleted),
        }


class CleanupService:
    """Service for deleting unwanted repositories from the target organization."""

    def __init__(self, client: CodebergClient, dry_run: bool = False):
        self.client = client
        self.dry_run = dry_run
        self.logger = structlog.get_logger().bind(component="cleanup", org=client.org)

    async def cleanup_inactive(self, inactive_days: int, now: datetime | None = None) -> CleanupReport:
        """Delete repos with no commits or no commits within ``inactive_days``."""
        cutoff = (now or utc_now()) - timedelta(days=inactive_days)
        report = CleanupReport(dry_run=self.dry_run)
        self.logger.info("Cleaning up inactive repos", inactive_days=inactive_days, cutoff=cutoff.isoformat())

        for repo in await self.client.list_org_repos():
            report.checked += 1
            last_commit = await self.client.last_commit_date(repo.name)
            if last_commit is None:
                self.logger.info("Repo has no commits", repo=repo.name)
                report.no_commits.append(repo.name)
                report.to_delete.append(repo.name)
            elif last_commit < cutoff:
                self.logger.info(
                    "Repo is inactive",
                    repo=repo.name,
                    days_since_commit=((now or utc_now()) - last_commit).days,
                )
                report.to_delete.append(repo.name)
            else:
                report.active.append(repo.name)

        await self._delete(report)
        return report

    async def cleanup_migrating(self) -> CleanupReport:
        """Delete repos whose page still shows an unfinished migration."""
        report = CleanupReport(dry_run=self.dry_run)

        for repo in await self.client.list_org_repos():
            report.checked += 1
            if not repo.html_url:
                continue
            try:
                migrating = await self.client.is_migrating(repo.html_url)
            except ApiError as e:
                self.logger.error("Failed to load repo page", repo=repo.name, error=str(e))
                continue
            if migrating:
                self.logger.info("Repo is stuck migrating", repo=repo.name)
                report.to_delete.append(repo.name)
            else:
                report.active.append(repo.name)

        await self._delete(report)
        return report

    async def _delete(self, report: CleanupReport) -> None:
        self.logger.info(
            "Cleanup summary",
            checked=report.checked,
            active=len(report.active),
            to_delete=len(report.to_delete),
        )
        if not report.to_delete:
            return
        if self.dry_run:
            self.logger.info("DRY RUN - no repos were deleted", repos=report.to_delete)
            return

        for name in report.to_delete:
            try:
                await self.client.delete_repo(name)
            except ApiError as e:
                self.logger.error("Failed to delete repo", repo=name, error=str(e))
                report.failed.append(name)
                continue
            report.deleted.append(name)

        self.logger.info("Deletion complete", deleted=len(report.deleted), failed=len(report.failed))
