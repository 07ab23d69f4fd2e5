"""Integration tests for the HTTP API."""

import asyncio
import re
from datetime import date, datetime, timedelta

import pytest
from prometheus_client import REGISTRY

from banana_api import api
from banana_api.config import settings
from banana_api.databricks import MOCK_DATA_SOURCE
from banana_api.generators import MAX_FORECAST_DAYS

HEX_32 = re.compile(r"^[0-9a-f]{32}$")
HEX_16 = re.compile(r"^[0-9a-f]{16}$")


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


@pytest.fixture
def real_databricks(monkeypatch):
    """Switch the data source out of mock mode."""
    monkeypatch.setattr(settings, "databricks_mock_mode", False)


class TestWeatherForecast:
    """Test /weatherforecast."""

    def test_default_five_days(self, client):
        response = client.get("/weatherforecast")

        assert response.status_code == 200
        forecasts = response.json()
        assert len(forecasts) == 5
        assert set(forecasts[0]) == {"date", "temperatureC", "temperatureF", "summary"}

        today = date.today()
        dates = [date.fromisoformat(f["date"]) for f in forecasts]
        assert dates == [today + timedelta(days=i) for i in range(1, 6)]
        for forecast in forecasts:
            assert -20 <= forecast["temperatureC"] < 55
            assert forecast["temperatureF"] == 32 + round(forecast["temperatureC"] * 9 / 5)

    def test_zero_days(self, client):
        response = client.get("/weatherforecast", params={"days": 0})

        assert response.status_code == 200
        assert response.json() == []

    def test_more_than_a_year(self, client):
        """Horizons past one year are served in full."""
        response = client.get("/weatherforecast", params={"days": 366})

        assert response.status_code == 200
        forecasts = response.json()
        assert len(forecasts) == 366
        assert date.fromisoformat(forecasts[-1]["date"]) == date.today() + timedelta(days=366)

    @pytest.mark.parametrize("days", [-1, MAX_FORECAST_DAYS + 1, "abc"])
    def test_invalid_days(self, client, days):
        response = client.get("/weatherforecast", params={"days": days})

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_counts_requests(self, client):
        before_requests = _sample("weather_forecast_requests_total")
        before_total = _sample("api_requests_total", {"endpoint": "/weatherforecast"})

        client.get("/weatherforecast")

        assert _sample("weather_forecast_requests_total") == before_requests + 1
        assert _sample("api_requests_total", {"endpoint": "/weatherforecast"}) == before_total + 1

    def test_response_headers(self, client):
        response = client.get("/weatherforecast", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"


class TestBananaAnalytics:
    """Test the Databricks-backed endpoints in mock mode."""

    def test_analytics(self, client):
        response = client.get("/api/databricks/banana-analytics")

        assert response.status_code == 200
        data = response.json()
        assert data["dataSource"] == MOCK_DATA_SOURCE
        assert len(data["productions"]) == 20
        assert len(data["sales"]) == 10
        assert set(data["summary"]) == {
            "totalProductionTons",
            "globalAverageQuality",
            "totalRevenue",
            "countriesServed",
            "topProducingRegion",
            "mostPopularVariety",
        }
        assert data["summary"]["countriesServed"] == 10
        assert data["summary"]["totalProductionTons"] == pytest.approx(
            sum(p["tonsProduced"] for p in data["productions"])
        )

    def test_production(self, client):
        response = client.get("/api/databricks/production/2023")

        assert response.status_code == 200
        records = response.json()
        assert len(records) == 72
        assert {r["year"] for r in records} == {2023}
        assert {r["month"] for r in records} == set(range(1, 13))
        assert "averageQualityScore" in records[0]

    @pytest.mark.parametrize("year", [1800, 2500])
    def test_production_year_out_of_range(self, client, year):
        assert client.get(f"/api/databricks/production/{year}").status_code == 400

    @pytest.mark.parametrize("params", [{}, {"region": "Caribbean"}])
    def test_sales(self, client, params):
        response = client.get("/api/databricks/sales", params=params)

        assert response.status_code == 200
        records = response.json()
        assert len(records) == 10
        for record in records:
            assert set(record) == {
                "country",
                "totalSales",
                "totalBunches",
                "averagePrice",
                "marketShare",
            }
            assert 1 <= record["averagePrice"] <= 4
            assert 5 <= record["marketShare"] <= 30

    def test_sales_rejects_injection(self, client):
        response = client.get("/api/databricks/sales", params={"region": "<script>alert(1)</script>"})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid query parameter detected"

    @pytest.mark.parametrize(
        "path",
        [
            "/api/databricks/banana-analytics",
            "/api/databricks/production/2024",
            "/api/databricks/sales",
        ],
    )
    def test_real_mode_not_implemented(self, client, real_databricks, path):
        """Outside mock mode every data call reports 501."""
        response = client.get(path)

        assert response.status_code == 501
        assert response.json()["type"] == "DataSourceNotImplementedError"


    def test_query_timeout_unavailable(self, client, monkeypatch):
        """A timed-out warehouse query reports 503."""
        monkeypatch.setattr(settings, "databricks_simulate_latency", True)
        monkeypatch.setattr(settings, "databricks_query_timeout", 0.001)

        response = client.get("/api/databricks/sales")

        assert response.status_code == 503
        assert response.json()["type"] == "DataSourceError"


class TestHealth:
    """Test health endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Healthy"
        assert set(data["entries"]) == {"self", "weather_service", "databricks"}
        assert data["entries"]["weather_service"]["tags"] == ["service", "weather"]

    def test_ready(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert list(response.json()["entries"]) == ["databricks"]

    def test_ready_degraded_outside_mock_mode(self, client, real_databricks):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "Degraded"

    def test_live(self, client, real_databricks):
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {
            "status": "Healthy",
            "totalDuration": response.json()["totalDuration"],
            "entries": {},
        }


class TestObservability:
    """Test metrics, tracing and error endpoints."""

    def test_prometheus_metrics(self, client):
        client.get("/weatherforecast")

        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert 'api_requests_total{endpoint="/weatherforecast"}' in response.text
        assert "api_requests_active" in response.text
        assert "api_request_duration_ms_bucket" in response.text

    def test_custom_metrics(self, client):
        response = client.get("/api/metrics/custom")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == settings.service_name
        assert data["version"] == settings.service_version
        assert data["uptimeSeconds"] >= 0
        assert datetime.fromisoformat(data["timestamp"]).tzinfo is not None
        assert set(data) == {
            "service",
            "version",
            "environment",
            "timestamp",
            "uptimeSeconds",
            "metrics",
        }
        assert data["metrics"]["requestsTotal"] == "Available at /metrics"

    def test_trace_ids(self, client, span_exporter):
        response = client.get("/api/trace/test")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Tracing test completed"
        assert HEX_32.match(data["traceId"])
        assert HEX_16.match(data["spanId"])

        server_span = next(s for s in span_exporter.get_finished_spans() if s.name == "GET /api/trace/test")
        assert format(server_span.context.trace_id, "032x") == data["traceId"]

    def test_incoming_trace_is_continued(self, client):
        trace_id = "4bf92f3577b34da6a3ce929d0e0e4736"

        response = client.get(
            "/api/trace/test",
            headers={"traceparent": f"00-{trace_id}-00f067aa0ba902b7-01"},
        )

        assert response.json()["traceId"] == trace_id

    def test_error_endpoint(self, client, span_exporter):
        labels = {"endpoint": "/api/error/test", "status": "error"}
        before_errors = _sample("api_request_duration_ms_count", labels)
        before_active = _sample("api_requests_active")

        response = client.get("/api/error/test")

        assert response.status_code == 500
        assert _sample("api_request_duration_ms_count", labels) == before_errors + 1
        assert _sample("api_requests_active") == before_active

        handler_span = next(
            s for s in span_exporter.get_finished_spans() if s.name == "GET /api/error/test"
        )
        assert handler_span.status.is_ok is False

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Grafana-banana API"


class TestLifespan:
    def test_dependencies_unavailable_before_startup(self):
        with pytest.raises(RuntimeError, match="Service not initialized"):
            api.get_mediator()
        with pytest.raises(RuntimeError, match="Service not initialized"):
            api.get_health_registry()

    def test_startup_builds_dependencies(self, client):
        assert api.get_mediator() is not None
        assert api.get_health_registry() is not None


@pytest.mark.asyncio
async def test_concurrent_requests(async_client):
    """Concurrent requests are all served and counted."""
    before = _sample("api_requests_total", {"endpoint": "/api/databricks/sales"})

    responses = await asyncio.gather(
        *(async_client.get("/api/databricks/sales") for _ in range(20))
    )

    assert all(r.status_code == 200 for r in responses)
    assert _sample("api_requests_total", {"endpoint": "/api/databricks/sales"}) == before + 20
