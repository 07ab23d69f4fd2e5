"""Prometheus metrics, OpenTelemetry tracing and per-request instrumentation."""

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from loguru import logger
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace import Span, Status, StatusCode
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, Histogram, generate_latest

from .config import Settings
from .exceptions import ConfigurationError

METER_NAME = "GrafanaBanana.Api"

requests_total = Counter(
    "api_requests_total",
    "Total number of API requests",
    ["endpoint"],
)

active_requests = Gauge(
    "api_requests_active",
    "Number of active API requests",
)

request_duration_ms = Histogram(
    "api_request_duration_ms",
    "API request duration in milliseconds",
    ["endpoint", "status"],
    buckets=[5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000],
)

weather_forecast_requests = Counter(
    "weather_forecast_requests_total",
    "Number of weather forecast requests",
)

tracer = trace.get_tracer(METER_NAME)

_owned_provider: TracerProvider | None = None


def configure_tracing(settings: Settings) -> TracerProvider:
    """Install the SDK tracer provider, unless one is already installed.

    Args:
        settings: Application settings with service identity and exporter endpoint.

    Returns:
        The active SDK tracer provider.

    Raises:
        ConfigurationError: If export is enabled without an endpoint.
    """
    global _owned_provider

    current = trace.get_tracer_provider()
    if isinstance(current, TracerProvider):
        logger.debug("Tracer provider already configured, leaving it in place")
        return current

    resource = Resource.create(
        {
            SERVICE_NAME: settings.service_name,
            SERVICE_VERSION: settings.service_version,
            "deployment.environment": settings.environment,
            "host.name": settings.host_name,
        }
    )
    provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

    if settings.otel_exporter_enabled:
        if not settings.otlp_endpoint:
            raise ConfigurationError("OTLP export is enabled but no endpoint is configured")
        exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint, insecure=True)
        provider.add_span_processor(BatchSpanProcessor(exporter))
        logger.info(f"Exporting traces to {settings.otlp_endpoint}")

    trace.set_tracer_provider(provider)
    _owned_provider = provider
    return provider


def shutdown_tracing() -> None:
    """Flush and shut down the provider installed by configure_tracing."""
    global _owned_provider

    if _owned_provider is not None:
        _owned_provider.shutdown()
        _owned_provider = None


@asynccontextmanager
async def instrument(
    endpoint: str,
    operation: str,
    attributes: dict[str, Any] | None = None,
) -> AsyncIterator[Span]:
    """Record request metrics and annotate the active span around a handler body.

    Args:
        endpoint: Route label for metrics, e.g. ``/weatherforecast``.
        operation: Human readable name used for span events.
        attributes: Extra span attributes.

    Yields:
        The current span, for further annotation.
    """
    span = trace.get_current_span()
    start = time.perf_counter()
    status = "error"

    requests_total.labels(endpoint=endpoint).inc()
    active_requests.inc()

    span.set_attribute("custom.endpoint", endpoint.strip("/"))
    for key, value in (attributes or {}).items():
        span.set_attribute(key, value)
    span.add_event(f"Starting {operation}")

    try:
        yield span
        span.add_event(f"{operation} completed successfully")
        status = "success"
    except Exception as e:
        logger.error(f"{operation} failed: {e}")
        span.record_exception(e)
        span.set_status(Status(StatusCode.ERROR, str(e)))
        raise
    finally:
        active_requests.dec()
        elapsed_ms = (time.perf_counter() - start) * 1000
        request_duration_ms.labels(endpoint=endpoint, status=status).observe(elapsed_ms)


def current_trace_ids() -> tuple[str | None, str | None]:
    """Return hex trace and span ids of the active span, if it is valid."""
    context = trace.get_current_span().get_span_context()
    if not context.is_valid:
        return None, None
    return trace.format_trace_id(context.trace_id), trace.format_span_id(context.span_id)


def render_metrics() -> tuple[bytes, str]:
    """Render all registered metrics in Prometheus exposition format."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
