"""
Application settings using Pydantic.

Provides environment-based configuration loading with PANELDUMP_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Grafana
    grafana_url: str = "http://localhost:3000"
    grafana_token: str | None = None
    grafana_org_id: int | None = None

    # Query execution
    default_datasource_uid: str | None = None
    query_interval_ms: int = 15000
    query_max_data_points: int = 1

    # Export
    output_dir: str = "."

    # Plugin resource API
    plugin_id: str = "jcosta-paneldump-app"
    api_prefix: str = ""
    cors_origins: list[str] = []

    # HTTP client settings
    http_timeout: float = 30.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "PANELDUMP_"

    @property
    def plugin_resource_prefix(self) -> str:
        return f"/api/plugins/{self.plugin_id}/resources"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
