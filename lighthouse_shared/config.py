"""
Shared configuration management for the Lighthouse client.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="LIGHTHOUSE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Backend API
    api_url: str = Field(default="http://localhost:3000/api")
    request_timeout: float = Field(default=30.0, gt=0)

    # Credential persistence; memory-only when unset
    credentials_file: Optional[str] = Field(default=None)

    # Where the user is sent when the session can no longer be recovered
    login_path: str = Field(default="/login")

    # Observability
    metrics_enabled: bool = Field(default=True)


class ClientConfig(BaseConfig):
    """Client-specific configuration."""

    client_name: str = "lighthouse"


def get_config(**overrides) -> ClientConfig:
    """Get configuration for the client, applying explicit overrides."""
    return ClientConfig(**overrides)
