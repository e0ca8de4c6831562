"""Configuration models for the synchronization layer."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RemoteSourceConfig(BaseModel):
    """Configuration for the remote collection source."""

    type: Literal["memory", "firestore"] = Field(
        default="memory", description="Remote source implementation (memory, firestore)"
    )
    project_id: str | None = Field(default=None, description="Cloud project hosting the database")
    credentials_path: str | None = Field(
        default=None, description="Service account JSON file. If None, uses ambient credentials."
    )
    database: str | None = Field(default=None, description="Named database, if not the default one")


class SyncConfig(BaseModel):
    """Configuration for live collection stores."""

    order_field: str = Field(
        default="createdAt", description="Server-assigned field snapshots are ordered by"
    )
    order_direction: Literal["asc", "desc"] = Field(
        default="desc", description="Snapshot ordering direction"
    )
    write_retries: int = Field(
        default=0, ge=0, le=10, description="Retries for idempotent writes on transient errors"
    )
    retry_base_delay: float = Field(default=0.5, gt=0.0, description="Initial retry delay in seconds")
    retry_max_delay: float = Field(default=10.0, gt=0.0, description="Maximum retry delay in seconds")


class AdminConfig(BaseModel):
    """Configuration for the admin predicate."""

    emails: list[str] = Field(default_factory=list, description="Emails allowed into admin panels")

    @field_validator("emails")
    @classmethod
    def normalize_emails(cls, v: list[str]) -> list[str]:
        """Lower-case and strip configured emails."""
        return [email.strip().lower() for email in v if email.strip()]


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the LIVESYNC_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="LIVESYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    remote: RemoteSourceConfig = Field(default_factory=RemoteSourceConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
