"""Shared test fixtures."""

import os
from collections.abc import AsyncGenerator, Generator

# Set test environment before the package reads its settings
os.environ["BANANA_LOG_LEVEL"] = "ERROR"
os.environ["BANANA_ENVIRONMENT"] = "development"
os.environ["BANANA_OTEL_EXPORTER_ENABLED"] = "false"
os.environ["BANANA_RATE_LIMIT"] = "1000/minute"
os.environ["BANANA_API_RATE_LIMIT"] = "1000/minute"
os.environ["BANANA_DATABRICKS_SIMULATE_LATENCY"] = "false"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from opentelemetry import trace  # noqa: E402
from opentelemetry.sdk.trace import TracerProvider  # noqa: E402
from opentelemetry.sdk.trace.export import SimpleSpanProcessor  # noqa: E402
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (  # noqa: E402
    InMemorySpanExporter,
)

# Installed before the app starts so configure_tracing leaves it in place
_span_exporter = InMemorySpanExporter()
_tracer_provider = TracerProvider()
_tracer_provider.add_span_processor(SimpleSpanProcessor(_span_exporter))
trace.set_tracer_provider(_tracer_provider)

from banana_api import app  # noqa: E402
from banana_api.api import lifespan  # noqa: E402


@pytest.fixture
def span_exporter() -> Generator[InMemorySpanExporter, None, None]:
    """In-memory exporter receiving every finished span."""
    _span_exporter.clear()
    yield _span_exporter
    _span_exporter.clear()


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Test client with lifespan started; server errors become 500 responses."""
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Async client for concurrency tests."""
    async with lifespan(app):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
