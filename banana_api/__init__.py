"""Grafana-banana API - mock weather and banana analytics with observability."""

from .api import app, create_app
from .handlers import Mediator, create_mediator
from .health import HealthCheckRegistry, HealthStatus

__version__ = "1.0.0"

__all__ = [
    "HealthCheckRegistry",
    "HealthStatus",
    "Mediator",
    "app",
    "create_app",
    "create_mediator",
]
