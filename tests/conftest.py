"""Shared pytest fixtures for repository migrator tests."""

from pathlib import Path

import pytest

from repo_migrator.core.config_loader import MigrationConfig
from repo_migrator.state.store import StateStore


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    """Location of the state snapshot for a test."""
    return tmp_path / "state" / "migration-state.json"


@pytest.fixture
def store(state_path: Path) -> StateStore:
    """Fresh state store for the test organizations."""
    store = StateStore(state_path, "source-org", "target-org")
    store.load()
    return store


@pytest.fixture
def config() -> MigrationConfig:
    """Default scheduling configuration."""
    return MigrationConfig()


@pytest.fixture(autouse=True)
def clear_override_env(monkeypatch):
    """Keep developer environment variables out of configuration tests."""
    for var in (
        "MAX_BATCHES",
        "EXCLUDE_INACTIVE_DAYS",
        "MAX_ATTEMPTS",
        "SYNC_ENABLED",
        "CONFIG_PATH",
        "REPO_LIST",
        "GITHUB_OUTPUT",
    ):
        monkeypatch.delenv(var, raising=False)
