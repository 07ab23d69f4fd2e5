"""Tests for configuration."""

import pytest

from banana_api.config import Settings, get_settings, settings


class TestSettings:
    """Test settings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        for name in (
            "BANANA_ENVIRONMENT",
            "BANANA_DATABRICKS_SIMULATE_LATENCY",
            "BANANA_OTEL_EXPORTER_ENABLED",
        ):
            monkeypatch.delenv(name, raising=False)

        config = Settings(_env_file=None)

        assert config.port == 5000
        assert config.service_name == "grafana-banana-api"
        assert config.otlp_endpoint == "http://tempo:4317"
        assert config.otel_exporter_enabled is True
        assert config.databricks_mock_mode is True
        assert config.databricks_simulate_latency is True
        assert config.analytics_production_limit == 20
        assert config.is_development is True

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("BANANA_PORT", "8080")
        monkeypatch.setenv("BANANA_DATABRICKS_MOCK_MODE", "false")
        monkeypatch.setenv("BANANA_CORS_ORIGINS", '["https://grafana.example.com"]')

        config = Settings(_env_file=None)

        assert config.port == 8080
        assert config.databricks_mock_mode is False
        assert config.cors_origins == ["https://grafana.example.com"]

    @pytest.mark.parametrize(("value", "development"), [(" Development ", True), ("Production", False)])
    def test_environment_normalized(self, value, development):
        config = Settings(environment=value, _env_file=None)

        assert config.environment == value.strip().lower()
        assert config.is_development is development

    def test_host_name(self):
        assert Settings(_env_file=None).host_name

    def test_get_settings_returns_singleton(self):
        assert get_settings() is settings
