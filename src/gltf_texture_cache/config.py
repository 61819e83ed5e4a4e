"""Configuration management using pydantic-settings.

Loads from environment variables and .env file.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .textures.base import ExecutionMode


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Attributes:
        execution_mode: Whether textures are resolved for a live runtime
            ("runtime") or an offline import pass that persists assets ("tooling").
        asset_dir: Directory where the tooling pass writes persisted textures.
        fetch_timeout: HTTP timeout for remote image URIs in seconds.
        fetch_retries: Number of attempts for remote image URIs.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Output logs in JSON format for production.

    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Texture resolution
    execution_mode: ExecutionMode = ExecutionMode.RUNTIME
    asset_dir: str = "./data/textures"

    # Remote image sources
    fetch_timeout: int = 30
    fetch_retries: int = 3

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def asset_path(self) -> Path:
        """Return the asset directory as a Path object.

        Returns:
            Path: Resolved path to the persisted texture directory.

        """
        return Path(self.asset_dir)


# Global settings instance
settings = Settings()
