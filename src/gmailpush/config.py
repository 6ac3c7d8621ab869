"""Configuration management for Gmail push.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from gmailpush.exceptions import ConfigurationError


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the GMAILPUSH_ prefix (e.g., GMAILPUSH_PUBSUB_TOPIC).
    """

    model_config = SettingsConfigDict(
        env_prefix="GMAILPUSH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # OAuth2 client identity
    client_id: str | None = Field(
        default=None,
        description="OAuth2 client id used to build Gmail credentials",
    )
    client_secret: str | None = Field(
        default=None,
        description="OAuth2 client secret used to build Gmail credentials",
    )
    token_uri: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="OAuth2 token endpoint used when credentials are refreshed",
    )

    # Gmail watch configuration
    pubsub_topic: str | None = Field(
        default=None,
        description="Full Pub/Sub topic name, e.g. projects/my-project/topics/gmail",
    )

    # History id store
    history_file_path: Path = Field(
        default=Path("gmailpush_history.json"),
        description="Path to the JSON file remembering the last history id per account",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    def require_watch_config(self) -> None:
        """Fail fast when the settings needed to talk to Gmail are missing.

        Raises:
            ConfigurationError: If client id, client secret or topic are unset.
        """
        missing = [
            name
            for name in ("client_id", "client_secret", "pubsub_topic")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Settings must have the following: {', '.join(missing)}"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
