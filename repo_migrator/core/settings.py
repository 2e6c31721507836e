"""Environment settings for migration runs.

Secrets, organization names and file locations come from the environment
(or a ``.env`` file) using Pydantic BaseSettings, so CI jobs can configure
the migrator without touching the batch configuration file.
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError


class MigratorSettings(BaseSettings):
    """Environment-driven settings for the migrator."""

    source_token: str | None = Field(None, alias="GH_SOURCE_TOKEN", description="GitHub token")
    target_token: str | None = Field(None, alias="CODEBERG_TOKEN", description="Codeberg token")
    source_org: str | None = Field(
        None,
        validation_alias=AliasChoices("GH_SOURCE_ORG", "GITHUB_SOURCE_ORG"),
        description="GitHub organization to migrate from",
    )
    target_org: str | None = Field(
        None, alias="CODEBERG_TARGET_ORG", description="Codeberg organization to migrate to"
    )

    state_path: Path = Field(Path("./state/migration-state.json"), alias="STATE_PATH")
    config_path: Path = Field(Path("./config/migration-config.json"), alias="CONFIG_PATH")
    output_path: Path = Field(Path("./state/batches.json"), alias="OUTPUT_PATH")
    batch_states_dir: Path = Field(Path("./state/batch-states"), alias="BATCH_STATES_DIR")
    work_dir: Path = Field(Path("/tmp/migration"), alias="WORK_DIR")  # nosec B108

    repo_list: str | None = Field(None, alias="REPO_LIST", description="Comma-separated repos")
    github_output: str | None = Field(None, alias="GITHUB_OUTPUT")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_dir: str | None = Field(None, alias="LOG_DIR")

    dry_run: bool = Field(False, alias="DRY_RUN")
    inactive_days: int = Field(365, alias="INACTIVE_DAYS")

    github_api_url: str = Field("https://api.github.com", alias="GITHUB_API_URL")
    codeberg_url: str = Field("https://codeberg.org", alias="CODEBERG_URL")
    http_timeout: float = Field(30.0, alias="HTTP_TIMEOUT", description="HTTP timeout in seconds")
    git_timeout: int = Field(1800, alias="GIT_TIMEOUT", description="Git clone/push timeout")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    @property
    def codeberg_api_url(self) -> str:
        return f"{self.codeberg_url.rstrip('/')}/api/v1"

    @property
    def repo_names(self) -> list[str]:
        """Repos named in REPO_LIST, in the order given."""
        if not self.repo_list:
            return []
        return [name.strip() for name in self.repo_list.split(",") if name.strip()]

    def require(self, *fields: str) -> None:
        """Raise ConfigurationError naming every unset required variable."""
        missing = []
        for field_name in fields:
            if not getattr(self, field_name):
                field = type(self).model_fields[field_name]
                env_name = field.alias
                if env_name is None and isinstance(field.validation_alias, AliasChoices):
                    env_name = str(field.validation_alias.choices[0])
                missing.append(env_name or field_name.upper())
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )
