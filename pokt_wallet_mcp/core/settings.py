"""Timeout settings for remote migration calls.

Centralized timeout configuration using Pydantic BaseSettings with
environment variable support for operational tuning.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MigrationTimeoutSettings(BaseSettings):
    """Migration service timeout configuration."""

    health_timeout: float = Field(
        10.0, alias="MIGRATION_HEALTH_TIMEOUT", description="Health probe timeout in seconds"
    )

    request_timeout: float = Field(
        120.0,
        alias="MIGRATION_REQUEST_TIMEOUT",
        description="Migration POST timeout in seconds (claiming runs pocketd remotely)",
    )

    connect_timeout: float = Field(
        5.0, alias="MIGRATION_CONNECT_TIMEOUT", description="TCP connect timeout in seconds"
    )

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


timeout_settings = MigrationTimeoutSettings()

HEALTH_TIMEOUT: float = timeout_settings.health_timeout
REQUEST_TIMEOUT: float = timeout_settings.request_timeout
CONNECT_TIMEOUT: float = timeout_settings.connect_timeout
