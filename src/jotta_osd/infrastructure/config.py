"""Configuration management for jotta-osd using Pydantic Settings."""

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageConfig(BaseSettings):
    """Object storage configuration.

    The chunk size is fixed by the remote layout and deliberately absent.
    """

    model_config = SettingsConfigDict(env_prefix="JOTTA_OSD_STORAGE_")

    root: str = "jotta-osd"
    upload_connections: int = Field(default=8, ge=1)
    read_connections: int = Field(default=8, ge=1)


class ObservabilityConfig(BaseSettings):
    """Observability configuration."""

    model_config = SettingsConfigDict(env_prefix="JOTTA_OSD_OBSERVABILITY_")

    log_level: str = "info"
    log_format: str = "json"
    otlp_endpoint: str = ""
    environment: str = "development"


class Config(BaseSettings):
    """Root configuration for jotta-osd."""

    model_config = SettingsConfigDict(
        env_prefix="JOTTA_OSD_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    storage: StorageConfig = Field(default_factory=StorageConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config()
