"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.config.constants import DEFAULT_CONFIG_FILENAME, DEFAULT_TRACKS_FILENAME


class AppSettings(BaseSettings):
    """Environment overrides for file locations.

    The database path defaults to the storage root declared in config.yml;
    DIGEST_DB_PATH takes precedence when set.
    """

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    config_path: Path = Field(
        default=Path(DEFAULT_CONFIG_FILENAME), validation_alias="DIGEST_CONFIG_PATH"
    )
    tracks_path: Path = Field(
        default=Path(DEFAULT_TRACKS_FILENAME), validation_alias="DIGEST_TRACKS_PATH"
    )
    db_path: Path | None = Field(default=None, validation_alias="DIGEST_DB_PATH")
    json_logs: bool = Field(default=True, validation_alias="DIGEST_JSON_LOGS")

    def resolve_db_path(self, configured: Path) -> Path:
        """Return the database path to open.

        Args:
            configured: Path derived from config.yml storage settings.

        Returns:
            The environment override if set, otherwise the configured path.
        """
        return self.db_path if self.db_path is not None else configured


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
