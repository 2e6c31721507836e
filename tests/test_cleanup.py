"""Tests for target organization cleanup."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from repo_migrator.core.exceptions import ApiError
from repo_migrator.models import TargetRepo
from repo_migrator.services.cleanup import CleanupService

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


@pytest.fixture
def client():
    """Mocked Codeberg client with three repos in the organization."""
    client = MagicMock()
    client.org = "target-org"
    client.list_org_repos = AsyncMock(
        return_value=[
            TargetRepo(name="fresh", html_url="https://codeberg.org/target-org/fresh"),
            TargetRepo(name="stale", html_url="https://codeberg.org/target-org/stale"),
            TargetRepo(name="empty", html_url="https://codeberg.org/target-org/empty"),
        ]
    )
    client.last_commit_date = AsyncMock(
        side_effect=lambda name: {
            "fresh": NOW - timedelta(days=10),
            "stale": NOW - timedelta(days=500),
            "empty": None,
        }[name]
    )
    client.delete_repo = AsyncMock()
    client.is_migrating = AsyncMock(side_effect=lambda url: url.endswith("/stale"))
    return client


class TestCleanupInactive:
    """Deleting repos without recent commits."""

    @pytest.mark.asyncio
    async def test_deletes_inactive_and_empty(self, client):
        """Test deleting stale and empty repos while keeping active ones."""
        report = await CleanupService(client).cleanup_inactive(365, now=NOW)

        assert report.checked == 3
        assert report.active == ["fresh"]
        assert report.no_commits == ["empty"]
        assert report.to_delete == ["stale", "empty"]
        assert report.deleted == ["stale", "empty"]
        assert [c.args[0] for c in client.delete_repo.await_args_list] == ["stale", "empty"]
        assert report.as_outputs() == {
            "deleted_count": 2,
            "failed_count": 0,
            "deleted_repos": "stale,empty",
        }

    @pytest.mark.asyncio
    async def test_dry_run_deletes_nothing(self, client):
        """Test that a dry run only reports candidates."""
        report = await CleanupService(client, dry_run=True).cleanup_inactive(365, now=NOW)

        assert report.to_delete == ["stale", "empty"]
        assert report.deleted == []
        client.delete_repo.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_failures_are_reported(self, client):
        """Test that a failed delete is reported and the rest continue."""
        client.delete_repo.side_effect = [ApiError("403 Forbidden", status_code=403), None]

        report = await CleanupService(client).cleanup_inactive(365, now=NOW)

        assert report.failed == ["stale"]
        assert report.deleted == ["empty"]


class TestCleanupMigrating:
    """Deleting repos stuck in the migrating state."""

    @pytest.mark.asyncio
    async def test_deletes_migrating_repos(self, client):
        """Test deleting repos stuck in migration."""
        report = await CleanupService(client).cleanup_migrating()

        assert report.to_delete == ["stale"]
        assert report.active == ["fresh", "empty"]
        client.delete_repo.assert_awaited_once_with("stale")

    @pytest.mark.asyncio
    async def test_page_errors_skip_repo(self, client):
        """Test that unreadable repo pages are never deleted."""
        client.is_migrating.side_effect = ApiError("500 Internal Server Error", status_code=500)

        report = await CleanupService(client).cleanup_migrating()

        assert report.to_delete == []
        client.delete_repo.assert_not_awaited()
