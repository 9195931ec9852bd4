"""
Shared configuration management for the Reelhub Access Layer.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Metadata provider
    tmdb_api_key: str = Field(default="")
    tmdb_base_url: str = Field(default="https://api.themoviedb.org/3")
    tmdb_timeout_seconds: float = Field(default=10.0)

    # Response cache
    cache_ttl_seconds: float = Field(default=300.0)
    cache_max_entries: int = Field(default=1024, gt=0)
    cache_collapse_inflight: bool = Field(default=True)
    cache_admin_enabled: bool = Field(default=False)

    # HTTP
    cors_allow_origins: str = Field(default="*")

    @property
    def cors_origins(self) -> list[str]:
        """Split the comma separated CORS allowlist."""
        origins = [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]
        return origins or ["*"]


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
