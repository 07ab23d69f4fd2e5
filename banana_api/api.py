"""FastAPI application and route handlers."""

import asyncio
import random
import time
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Path, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .config import settings
from .databricks import DatabricksService
from .exceptions import BananaAPIError, DataSourceError, DataSourceNotImplementedError
from .generators import MAX_FORECAST_DAYS
from .handlers import Mediator, create_mediator
from .health import HealthCheckRegistry, Predicate, create_health_registry, exclude_all, tagged
from .logging_config import configure_logging
from .middleware import add_request_id, add_security_headers, trace_request, validate_input
from .models import BananaAnalytics, BananaProduction, BananaSalesData, WeatherForecast
from .queries import (
    GetBananaAnalyticsQuery,
    GetBananaProductionQuery,
    GetBananaSalesQuery,
    GetWeatherForecastQuery,
)
from .repositories import create_analytics_repository, create_weather_repository
from .telemetry import (
    configure_tracing,
    current_trace_ids,
    instrument,
    render_metrics,
    shutdown_tracing,
    weather_forecast_requests,
)

_mediator: Mediator | None = None
_health_registry: HealthCheckRegistry | None = None
_started_at = time.monotonic()


def get_limiter() -> Limiter:
    """Per-client limiter; routes opt into the stricter "api" policy."""
    storage = settings.redis_url or "memory://"
    logger.debug(f"Rate limits: default {settings.rate_limit}, api {settings.api_rate_limit}")
    return Limiter(
        key_func=get_remote_address, storage_uri=storage, default_limits=[settings.rate_limit]
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    global _mediator, _health_registry, _started_at
    configure_logging(settings)
    configure_tracing(settings)

    databricks = DatabricksService(settings)
    _mediator = create_mediator(
        create_weather_repository(),
        create_analytics_repository(databricks),
    )
    _health_registry = create_health_registry(databricks)
    _started_at = time.monotonic()

    logger.info(
        f"Starting {settings.service_name} {settings.service_version} "
        f"({settings.environment})"
    )

    yield

    _mediator = None
    _health_registry = None
    shutdown_tracing()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Grafana-banana API",
    version=settings.service_version,
    description="Mock weather and banana analytics service with full observability",
    lifespan=lifespan,
)

app.middleware("http")(validate_input)
app.middleware("http")(add_security_headers)
app.middleware("http")(add_request_id)
app.middleware("http")(trace_request)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

limiter = get_limiter()
app.state.limiter = limiter  # Required by slowapi
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle validation errors with clean messages."""
    error_messages = []

    for error in exc.errors():
        field = error["loc"][-1] if error["loc"] else "field"
        message = error.get("msg", f"Invalid {field}")

        match error["type"]:
            case "missing":
                message = f"Required field '{field}' is missing"
            case "int_parsing":
                message = f"Field '{field}' must be an integer"

        error_messages.append(message)

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "Validation failed",
            "message": "; ".join(error_messages),
            "details": error_messages,
        },
    )


app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]


@app.exception_handler(BananaAPIError)
async def banana_api_exception_handler(request: Request, exc: BananaAPIError) -> JSONResponse:
    """Handle domain-specific errors."""
    logger.error(f"Banana API error: {exc}")

    if isinstance(exc, DataSourceNotImplementedError):
        status_code = status.HTTP_501_NOT_IMPLEMENTED
    elif isinstance(exc, DataSourceError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "type": exc.__class__.__name__},
    )


def get_mediator() -> Mediator:
    """Get the query mediator."""
    if _mediator is None:
        raise RuntimeError("Service not initialized")
    return _mediator


def get_health_registry() -> HealthCheckRegistry:
    """Get the health check registry."""
    if _health_registry is None:
        raise RuntimeError("Service not initialized")
    return _health_registry


@app.get("/weatherforecast", tags=["weather"], name="GetWeatherForecast")
@limiter.limit(settings.api_rate_limit)
async def weather_forecast_endpoint(
    request: Request,
    mediator: Annotated[Mediator, Depends(get_mediator)],
    days: int = Query(5, ge=0, le=MAX_FORECAST_DAYS),
) -> list[WeatherForecast]:
    """Forecast for the next ``days`` days."""
    weather_forecast_requests.inc()
    async with instrument("/weatherforecast", "weather forecast", {"weather.days": days}):
        logger.info("Generating weather forecast data")
        return await mediator.send(GetWeatherForecastQuery(days=days))


@app.get("/api/databricks/banana-analytics", tags=["analytics"], name="GetBananaAnalytics")
@limiter.limit(settings.api_rate_limit)
async def banana_analytics_endpoint(
    request: Request,
    mediator: Annotated[Mediator, Depends(get_mediator)],
) -> BananaAnalytics:
    """Analytics dashboard: production sample, sales and summary."""
    async with instrument("/api/databricks/banana-analytics", "banana analytics"):
        return await mediator.send(GetBananaAnalyticsQuery())


@app.get("/api/databricks/production/{year}", tags=["analytics"], name="GetBananaProduction")
@limiter.limit(settings.api_rate_limit)
async def banana_production_endpoint(
    request: Request,
    mediator: Annotated[Mediator, Depends(get_mediator)],
    year: int = Path(..., ge=1900, le=2100),
) -> list[BananaProduction]:
    """Monthly production per region for ``year``."""
    async with instrument(
        "/api/databricks/production", "banana production", {"databricks.query_year": year}
    ):
        return await mediator.send(GetBananaProductionQuery(year=year))


@app.get("/api/databricks/sales", tags=["analytics"], name="GetBananaSales")
@limiter.limit(settings.api_rate_limit)
async def banana_sales_endpoint(
    request: Request,
    mediator: Annotated[Mediator, Depends(get_mediator)],
    region: str | None = Query(None, max_length=100),
) -> list[BananaSalesData]:
    """Sales per country, optionally scoped to a region."""
    async with instrument(
        "/api/databricks/sales", "banana sales", {"databricks.query_region": region or "Global"}
    ):
        return await mediator.send(GetBananaSalesQuery(region=region))


@app.get("/api/metrics/custom", tags=["observability"], name="GetCustomMetrics")
async def custom_metrics_endpoint() -> dict[str, Any]:
    """Describe the service and where its metrics live."""
    async with instrument("/api/metrics/custom", "custom metrics"):
        logger.info("Custom metrics endpoint called")
        return {
            "service": settings.service_name,
            "version": settings.service_version,
            "environment": settings.environment,
            "timestamp": datetime.now(UTC).isoformat(),
            "uptimeSeconds": round(time.monotonic() - _started_at, 3),
            "metrics": {
                "requestsTotal": "Available at /metrics",
                "activeRequests": "Available at /metrics",
                "requestDuration": "Available at /metrics",
            },
        }


@app.get("/api/trace/test", tags=["observability"], name="TestTracing")
async def trace_test_endpoint() -> dict[str, str | None]:
    """Simulate a little work inside a span and return its ids."""
    async with instrument("/api/trace/test", "trace test", {"test.endpoint": "trace-test"}):
        logger.info("Testing distributed tracing")

        await asyncio.sleep(random.randint(10, 100) / 1000)

        trace_id, span_id = current_trace_ids()
        return {"message": "Tracing test completed", "traceId": trace_id, "spanId": span_id}


@app.get("/api/error/test", tags=["observability"], name="TestError", response_model=None)
async def error_test_endpoint() -> None:
    """Always fail, to exercise error tracking."""
    async with instrument("/api/error/test", "error test", {"test.endpoint": "error-test"}):
        logger.warning("Testing error tracking - this is intentional")
        raise RuntimeError("This is a test exception for observability testing")


async def _health_response(registry: HealthCheckRegistry, predicate: Predicate | None) -> JSONResponse:
    report = await registry.run(predicate)
    return JSONResponse(status_code=report.http_status, content=report.to_dict())


@app.get("/health", tags=["health"])
async def health_endpoint(
    registry: Annotated[HealthCheckRegistry, Depends(get_health_registry)],
) -> JSONResponse:
    """Run every health check."""
    return await _health_response(registry, None)


@app.get("/health/ready", tags=["health"])
async def readiness_endpoint(
    registry: Annotated[HealthCheckRegistry, Depends(get_health_registry)],
) -> JSONResponse:
    """Run checks tagged ``ready``."""
    return await _health_response(registry, tagged("ready"))


@app.get("/health/live", tags=["health"])
async def liveness_endpoint(
    registry: Annotated[HealthCheckRegistry, Depends(get_health_registry)],
) -> JSONResponse:
    """Report process liveness without running dependency checks."""
    return await _health_response(registry, exclude_all)


@app.get("/metrics", tags=["observability"], include_in_schema=False)
async def prometheus_metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    payload, content_type = render_metrics()
    return Response(content=payload, media_type=content_type)


@app.get("/", tags=["health"])
async def root_endpoint() -> dict[str, str]:
    """API information endpoint."""
    return {
        "name": "Grafana-banana API",
        "version": settings.service_version,
        "status": "running",
        "docs": "/docs",
    }


app.openapi_tags = [
    {"name": "weather", "description": "Weather forecasts"},
    {"name": "analytics", "description": "Banana analytics (Databricks)"},
    {"name": "observability", "description": "Metrics and tracing diagnostics"},
    {"name": "health", "description": "Health checks"},
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    return app
