"""Configuration using pydantic-settings."""

import socket

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read once at startup."""

    model_config = SettingsConfigDict(env_prefix="BANANA_", env_file=".env", extra="ignore")

    host: str = "0.0.0.0"  # nosec B104 - Required for container deployment
    port: int = 5000
    log_level: str = "INFO"
    log_file: str | None = None
    log_json: bool = False

    environment: str = "development"

    # OpenTelemetry
    service_name: str = "grafana-banana-api"
    service_version: str = "1.0.0"
    otlp_endpoint: str = "http://tempo:4317"
    otel_exporter_enabled: bool = True

    # Rate limiting
    rate_limit: str = "100/minute"
    api_rate_limit: str = "50/minute"
    redis_url: str | None = None

    cors_origins: list[str] = ["*"]

    # Databricks settings
    databricks_mock_mode: bool = True
    databricks_simulate_latency: bool = True
    databricks_server_hostname: str = ""
    databricks_http_path: str = ""
    databricks_query_timeout: float = 30

    analytics_production_limit: int = 20

    @field_validator("environment", mode="before")
    @classmethod
    def normalize_environment(cls, value: str) -> str:
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def is_development(self) -> bool:
        """Check if running in the development environment."""
        return self.environment == "development"

    @property
    def host_name(self) -> str:
        return socket.gethostname()


settings = Settings()


def get_settings() -> Settings:
    """Get settings instance (for dependency injection)."""
    return settings
