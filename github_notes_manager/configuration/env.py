"""Pydantic Settings model for application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment variable settings for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Generic application-wide settings
    DEBUG: bool = False

    # GitHub API settings
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_PAT_TOKEN: str | None = None

    # Synchronization settings
    SYNC_CONFIG_PATH: Path | None = None
    VAULT_PATH: Path | None = None


def get_settings() -> Settings:
    """Read the settings from the environment and the .env file."""
    return Settings()
