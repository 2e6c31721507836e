"""Tests for the per-repository phase runner."""

import json
from datetime import datetime, timezone

import pytest

from repo_migrator.core.exceptions import ApiError, GitCommandError
from repo_migrator.migration.runner import PhaseRunner
from repo_migrator.models import (
    ErrorType,
    MigrateOptions,
    MigrationPhase,
    RepoStatus,
    SourceRepo,
    SyncResult,
)

from .helpers import FakeMigrator, FakeSyncer, make_repo


class SnapshotSyncer(FakeSyncer):
    """Captures the persisted snapshot at the moment branch sync starts."""

    def __init__(self, state_path):
        super().__init__()
        self.state_path = state_path
        self.seen: dict | None = None

    async def sync(self, repo: SourceRepo) -> SyncResult:
        self.seen = json.loads(self.state_path.read_text(encoding="utf-8"))
        return await super().sync(repo)


class TestRun:
    """Full migration of one repository."""

    @pytest.mark.asyncio
    async def test_both_phases_succeed(self, store):
        """Test migrating a repo through both phases."""
        migrator, syncer = FakeMigrator(), FakeSyncer(refs=7)
        runner = PhaseRunner(store, migrator, syncer)

        result = await runner.run(make_repo("alpha"))

        assert result.success
        assert result.api_migration and result.branch_sync
        assert result.items_processed == 7
        assert migrator.migrated == ["alpha"]
        assert syncer.synced == ["alpha"]

        repo = store.get("alpha")
        assert repo.status is RepoStatus.COMPLETED
        assert repo.attempt_count == 1
        assert repo.phases == {"apiMigration": True, "branchSync": True}
        assert repo.completed_at is not None
        assert repo.last_synced_at is not None

    @pytest.mark.asyncio
    async def test_checkpoint_before_branch_sync(self, store, state_path):
        """Test that the API phase is saved before branch sync starts."""
        syncer = SnapshotSyncer(state_path)
        runner = PhaseRunner(store, FakeMigrator(), syncer)

        await runner.run(make_repo("alpha"))

        record = syncer.seen["repos"]["alpha"]
        assert record["status"] == "in_progress"
        assert record["phases"] == {"apiMigration": True, "branchSync": False}

    @pytest.mark.asyncio
    async def test_resume_runs_only_branch_sync(self, store):
        """Test resuming a repo whose API phase already completed."""
        store.mark_phase_complete("alpha", MigrationPhase.API_MIGRATION)
        store.mark_failed("alpha", "push failed: timeout", ErrorType.TRANSIENT)
        migrator, syncer = FakeMigrator(), FakeSyncer()

        result = await PhaseRunner(store, migrator, syncer).run(make_repo("alpha"))

        assert result.success
        assert migrator.migrated == []
        assert syncer.synced == ["alpha"]
        assert store.get("alpha").status is RepoStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_existing_target_skips_api_call(self, store):
        """Test that an existing target repo skips the API migration."""
        migrator = FakeMigrator(existing={"alpha"})

        result = await PhaseRunner(store, migrator, FakeSyncer()).run(make_repo("alpha"))

        assert result.success
        assert migrator.migrated == []

    @pytest.mark.asyncio
    async def test_conflict_counts_as_migrated(self, store):
        """Test that a 409 from the API counts as migrated."""
        migrator = FakeMigrator(error=ApiError("Codeberg API error: 409 Conflict", status_code=409))
        syncer = FakeSyncer()

        result = await PhaseRunner(store, migrator, syncer).run(make_repo("alpha"))

        assert result.success
        assert syncer.synced == ["alpha"]

    @pytest.mark.asyncio
    async def test_api_failure_stops_before_branch_sync(self, store, state_path):
        """Test that an API failure skips branch sync."""
        migrator = FakeMigrator(error=ApiError("GitHub API error: 404 Not Found", status_code=404))
        syncer = FakeSyncer()

        result = await PhaseRunner(store, migrator, syncer).run(make_repo("alpha"))

        assert not result.success
        assert result.error_type is ErrorType.PERMANENT
        assert syncer.synced == []

        saved = json.loads(state_path.read_text(encoding="utf-8"))["repos"]["alpha"]
        assert saved["status"] == "failed"
        assert saved["errorType"] == "permanent"
        assert saved["phases"] == {"apiMigration": False, "branchSync": False}

    @pytest.mark.asyncio
    async def test_branch_sync_failure_keeps_api_phase(self, store):
        """Test that a branch sync failure keeps the API phase."""
        syncer = FakeSyncer(error=GitCommandError("Command timed out after 1800 seconds: git push"))

        result = await PhaseRunner(store, FakeMigrator(), syncer).run(make_repo("alpha"))

        assert not result.success
        assert result.api_migration
        assert not result.branch_sync
        repo = store.get("alpha")
        assert repo.status is RepoStatus.FAILED
        assert repo.error_type is ErrorType.TRANSIENT
        assert repo.phase_done(MigrationPhase.API_MIGRATION)
        assert not repo.phase_done(MigrationPhase.BRANCH_SYNC)

    @pytest.mark.asyncio
    async def test_unsuccessful_sync_result_is_a_failure(self, store):
        """Test that an unsuccessful sync result fails the repo."""
        class RejectingSyncer(FakeSyncer):
            async def sync(self, repo):
                return SyncResult(success=False, error="remote rejected: 403 forbidden")

        result = await PhaseRunner(store, FakeMigrator(), RejectingSyncer()).run(make_repo("alpha"))

        assert not result.success
        assert result.error == "remote rejected: 403 forbidden"
        assert result.error_type is ErrorType.PERMANENT

    @pytest.mark.asyncio
    async def test_attempts_accumulate_across_runs(self, store):
        """Test that each run adds an attempt."""
        runner = PhaseRunner(store, FakeMigrator(error=RuntimeError("network down")), FakeSyncer())

        await runner.run(make_repo("alpha"))
        await runner.run(make_repo("alpha"))

        assert store.get("alpha").attempt_count == 2

    @pytest.mark.asyncio
    async def test_wiki_option_follows_source(self, store):
        """Test that the wiki option follows the source repo."""
        migrator = FakeMigrator()
        runner = PhaseRunner(store, migrator, FakeSyncer(), MigrateOptions(issues=False))

        await runner.run(make_repo("alpha", has_wiki=True))

        assert migrator.options[0].wiki is True
        assert migrator.options[0].issues is False


class TestResync:
    """Branch resync of completed repositories."""

    @pytest.mark.asyncio
    async def test_resync_updates_last_synced(self, store):
        """Test that a resync refreshes the last sync time."""
        first = store.mark_completed("alpha")
        migrator, syncer = FakeMigrator(), FakeSyncer()

        result = await PhaseRunner(store, migrator, syncer).resync(make_repo("alpha"))

        assert result.success
        assert migrator.migrated == []
        assert syncer.synced == ["alpha"]
        repo = store.get("alpha")
        assert repo.status is RepoStatus.COMPLETED
        assert repo.last_synced_at >= first.last_synced_at
        assert repo.attempt_count == first.attempt_count

    @pytest.mark.asyncio
    async def test_resync_failure_keeps_completed(self, store):
        """Test that a failed resync keeps the repo completed."""
        store.mark_completed("alpha")
        syncer = FakeSyncer(error=GitCommandError("Could not resolve host: codeberg.org"))

        result = await PhaseRunner(store, FakeMigrator(), syncer).resync(make_repo("alpha"))

        assert not result.success
        repo = store.get("alpha")
        assert repo.status is RepoStatus.COMPLETED
        assert repo.phases == {"apiMigration": True, "branchSync": True}
        assert repo.error == "Could not resolve host: codeberg.org"
        assert repo.error_type is ErrorType.TRANSIENT

    @pytest.mark.asyncio
    async def test_resync_records_source_push_time(self, store):
        """Test that a successful resync stores the source push time it saw."""
        store.mark_completed("alpha")
        pushed = datetime(2024, 7, 1, tzinfo=timezone.utc)

        await PhaseRunner(store, FakeMigrator(), FakeSyncer()).resync(make_repo("alpha", pushed_at=pushed))

        repo = store.get("alpha")
        assert repo.remote_last_modified == pushed
        assert repo.last_synced_at > pushed
