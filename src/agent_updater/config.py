"""Configuration management for the agent updater."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_updater import constants


class Settings(BaseSettings):
    """Updater settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Region
    aws_region: str | None = Field(
        default=None, description="Explicit region override; skips metadata lookup"
    )
    default_region: str = Field(
        default=constants.DEFAULT_REGION, description="Fallback region when lookup fails"
    )
    metadata_url: str = Field(
        default=constants.METADATA_URL, description="Instance metadata service base URL"
    )
    metadata_token_url: str = Field(
        default=constants.METADATA_TOKEN_URL, description="IMDSv2 session token URL"
    )
    metadata_timeout_seconds: float = Field(
        default=constants.METADATA_TIMEOUT_SECONDS,
        description="Read timeout for metadata requests",
    )

    # Remote storage
    bucket_template: str = Field(
        default=constants.BUCKET_TEMPLATE, description="Bucket name, formatted with {region}"
    )
    manifest_key: str = Field(
        default=constants.MANIFEST_KEY, description="Key of the version manifest"
    )
    http_connect_timeout_seconds: float = Field(
        default=constants.HTTP_CONNECT_TIMEOUT_SECONDS,
        description="Connect timeout for storage requests",
    )
    http_read_timeout_seconds: float = Field(
        default=constants.HTTP_READ_TIMEOUT_SECONDS,
        description="Read timeout for storage requests",
    )
    download_dir: str = Field(
        default=constants.DOWNLOAD_DIR, description="Directory the artifact is downloaded to"
    )

    # Sanity check
    service_control_path: str = Field(
        default=constants.SERVICE_CONTROL_PATH,
        description="Service control binary probed after install",
    )
    sanity_check_enabled: bool = Field(
        default=True, description="Run the post-install sanity check"
    )
    sanity_check_delay_seconds: float = Field(
        default=constants.SANITY_CHECK_DELAY_SECONDS,
        description="Delay before probing the agent status",
    )

    # Logging
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")
    log_to_file: bool = Field(default=True, description="Also write logs to a file")
    log_file_path: str = Field(default=constants.LOG_FILE_PATH, description="Log file path")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def log_directory(self) -> str:
        """Directory holding the log file."""
        return str(Path(self.log_file_path).parent)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
