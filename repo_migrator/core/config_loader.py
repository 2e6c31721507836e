"""Batch configuration loading for migration runs."""

import os
from pathlib import Path
from typing import Any

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..models.remote import MigrateOptions

logger = structlog.get_logger()


class MigrationConfig(BaseModel):
    """Scheduling configuration shared by discovery and migration runs.

    Read from YAML or JSON; keys may be camelCase (``batchSize``) or
    snake_case (``batch_size``).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    batch_size: int = Field(default=10, ge=1)
    max_parallel_repos: int = Field(default=5, ge=1)
    max_batches_per_run: int = Field(default=5, ge=0)
    exclude_repos: list[str] = Field(default_factory=list)
    include_only_repos: list[str] = Field(default_factory=list)
    exclude_inactive_days: int = Field(default=0, ge=0)
    sync_enabled: bool = False
    max_attempts: int = Field(default=0, ge=0, description="Retry ceiling, 0 for unlimited")
    migrate_options: MigrateOptions = Field(default_factory=MigrateOptions)


def load_config(config_path: str | Path | None = None) -> MigrationConfig:
    """Load batch configuration from a YAML/JSON file plus environment overrides.

    Args:
        config_path: Path to the configuration file (defaults to CONFIG_PATH
            or ./config/migration-config.json)

    Returns:
        Loaded configuration; defaults when the file does not exist

    Raises:
        ValueError: If the file exists but cannot be parsed or validated
    """
    load_dotenv()

    path = Path(config_path or os.getenv("CONFIG_PATH", "./config/migration-config.json"))
    data: dict[str, Any] = {}
    if path.exists():
        data = _load_yaml_config(path)
    else:
        logger.info("Config file not found, using defaults", path=str(path))

    try:
        config = MigrationConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Failed to load config from {path}: {e}") from e

    _apply_env_overrides(config)
    return config


def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load a YAML (or JSON) configuration file."""
    try:
        loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except Exception as e:
        raise ValueError(f"Failed to load config from {config_path}: {e}") from e
    # yaml.safe_load can return None, str, list, etc.
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _apply_env_overrides(config: MigrationConfig) -> None:
    """Apply environment variable overrides (highest priority)."""
    if max_batches := os.getenv("MAX_BATCHES"):
        config.max_batches_per_run = int(max_batches)
    if inactive_days := os.getenv("EXCLUDE_INACTIVE_DAYS"):
        config.exclude_inactive_days = int(inactive_days)
    if max_attempts := os.getenv("MAX_ATTEMPTS"):
        config.max_attempts = int(max_attempts)
    if sync_enabled := os.getenv("SYNC_ENABLED"):
        config.sync_enabled = sync_enabled.strip().lower() in ("1", "true", "yes", "on")
