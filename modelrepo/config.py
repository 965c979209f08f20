"""Repository configuration: env-driven via pydantic-settings.

Reads from a ``.env`` file and ``MODELREPO_*`` environment variables.
A ``RepoConfig`` is built once by the entry point and passed down; there
is no module-level instance.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from modelrepo.models.layout import RepoLayout


class RepoConfig(BaseSettings):
    """Model repository configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export MODELREPO_DB_PATH=/data/model_repo.db
        export MODELREPO_LOG_LEVEL=DEBUG
        export MODELREPO_ARTIFACT_BASE=/srv/artifacts
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MODELREPO_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage
    db_path: Path = Path(".modelrepo/model_repo.db")
    table_name: str = "model_repo"
    artifact_base: Path = Path(".modelrepo/artifacts")
    busy_timeout_seconds: float = 30.0

    # Expected table layout for this build
    layout_version: str = "MR-1"

    @property
    def layout(self) -> RepoLayout:
        """The layout pin this process installs and upgrades to."""
        return RepoLayout(layout_id=self.layout_version)

    @property
    def base_uri(self) -> str:
        """Default base storage URI for newly installed repositories."""
        return self.artifact_base.resolve().as_uri()

    @property
    def is_production(self) -> bool:
        return self.environment == "production"
