"""Application settings powered by Pydantic BaseSettings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Centralized environment configuration.

    Credentials for external collaborators live here and never in the YAML
    configuration file.
    """

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, env_file=".env", env_file_encoding="utf-8"
    )

    brave_search_api_key: str | None = Field(
        default=None, validation_alias="BRAVE_SEARCH_API_KEY"
    )
    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    db_path: Path = Field(
        default=Path("data/curator.sqlite"), validation_alias="CURATOR_DB_PATH"
    )
    config_path: Path | None = Field(
        default=None, validation_alias="CURATOR_CONFIG_PATH"
    )

    def missing_credentials(self) -> list[str]:
        """Return the environment variables required for a run that are unset."""
        missing: list[str] = []
        if not self.brave_search_api_key:
            missing.append("BRAVE_SEARCH_API_KEY")
        if not self.gemini_api_key:
            missing.append("GEMINI_API_KEY")
        return missing


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
