"""Configuration models for the statesync engine."""

from typing import Literal

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DEBOUNCE_MS: int = 5000
DEFAULT_PART_SIZE_BYTES: int = 5 * 1024 * 1024


class SyncConfig(BaseModel):
    """Configuration for scheduling and transfer."""

    debounce_ms: int = Field(
        default=DEFAULT_DEBOUNCE_MS,
        ge=0,
        description="Delay between the first unsynced change and the sync cycle it triggers",
    )
    part_size_bytes: int = Field(
        default=DEFAULT_PART_SIZE_BYTES,
        ge=1,
        description="Serialized diffs larger than this are uploaded in parts of at most this size",
    )


class RemoteStoreConfig(BaseModel):
    """Configuration for the remote authoritative store."""

    type: Literal["memory", "filesystem", "http"] = Field(
        default="memory", description="Remote store implementation"
    )
    root_directory: str | None = Field(
        default=None, description="Blob directory for the filesystem store"
    )
    base_url: HttpUrl | None = Field(default=None, description="Endpoint for the http store")
    timeout_seconds: float = Field(
        default=30.0, gt=0.0, description="Per-request timeout for the http store"
    )


class LocalStoreConfig(BaseModel):
    """Configuration for local device identity and baseline persistence."""

    state_directory: str | None = Field(
        default=None,
        description="Directory holding device_id and baseline files. If None, state is kept in memory.",
    )


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
    variables with the STATESYNC_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="STATESYNC_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    sync: SyncConfig = Field(default_factory=SyncConfig)
    remote_store: RemoteStoreConfig = Field(default_factory=RemoteStoreConfig)
    local_store: LocalStoreConfig = Field(default_factory=LocalStoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
