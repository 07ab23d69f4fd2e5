"""Health checks with tag filtering for liveness and readiness probes.

Every call to ``HealthCheckRegistry.run`` re-runs the selected checks and
reduces them to the worst status. Reports serialise in the HealthChecks UI
layout so existing dashboards can read them.
"""

import inspect
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any

from loguru import logger

from .databricks import DatabricksService


class HealthStatus(Enum):
    """Health states, from worst to best."""

    UNHEALTHY = "Unhealthy"
    DEGRADED = "Degraded"
    HEALTHY = "Healthy"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {HealthStatus.UNHEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.HEALTHY: 2}


@dataclass
class HealthCheckResult:
    """Outcome of a single check."""

    status: HealthStatus
    description: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    exception: str | None = None

    @classmethod
    def healthy(cls, description: str | None = None, **data: Any) -> "HealthCheckResult":
        return cls(HealthStatus.HEALTHY, description, data)

    @classmethod
    def degraded(cls, description: str | None = None, **data: Any) -> "HealthCheckResult":
        return cls(HealthStatus.DEGRADED, description, data)

    @classmethod
    def unhealthy(cls, description: str | None = None, **data: Any) -> "HealthCheckResult":
        return cls(HealthStatus.UNHEALTHY, description, data)


HealthCheck = Callable[[], HealthCheckResult | Awaitable[HealthCheckResult]]


@dataclass(frozen=True)
class HealthCheckRegistration:
    name: str
    check: HealthCheck
    tags: frozenset[str] = frozenset()


Predicate = Callable[[HealthCheckRegistration], bool]


def tagged(tag: str) -> Predicate:
    """Select checks carrying ``tag``."""
    return lambda registration: tag in registration.tags


def exclude_all(registration: HealthCheckRegistration) -> bool:
    """Select nothing; used by the liveness probe."""
    return False


def format_duration(duration: timedelta) -> str:
    """Format as ``HH:MM:SS.fffffff`` (100 ns ticks)."""
    total_us = round(duration.total_seconds() * 1_000_000)
    seconds, micros = divmod(total_us, 1_000_000)
    minutes, seconds = divmod(seconds, 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{micros * 10:07d}"


@dataclass
class HealthReportEntry:
    status: HealthStatus
    duration: timedelta
    tags: frozenset[str]
    description: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    exception: str | None = None

    def to_dict(self) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "data": self.data,
            "description": self.description,
            "duration": format_duration(self.duration),
            "status": self.status.value,
            "tags": sorted(self.tags),
        }
        if self.exception:
            entry["exception"] = self.exception
        return entry


@dataclass
class HealthReport:
    """Aggregated result of a health run."""

    entries: dict[str, HealthReportEntry]
    total_duration: timedelta

    @property
    def status(self) -> HealthStatus:
        """Worst status among entries, Healthy when there are none."""
        if not self.entries:
            return HealthStatus.HEALTHY
        return min((entry.status for entry in self.entries.values()), key=lambda s: s.rank)

    @property
    def http_status(self) -> int:
        return 503 if self.status is HealthStatus.UNHEALTHY else 200

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "totalDuration": format_duration(self.total_duration),
            "entries": {name: entry.to_dict() for name, entry in self.entries.items()},
        }


class HealthCheckRegistry:
    """Named health checks, run on demand."""

    def __init__(self) -> None:
        self._registrations: dict[str, HealthCheckRegistration] = {}

    def register(self, name: str, check: HealthCheck, tags: Iterable[str] = ()) -> None:
        """Register a check under a unique name.

        Args:
            name: Entry name in the report.
            check: Sync or async callable returning a HealthCheckResult.
            tags: Tags used by probe predicates.

        Raises:
            ValueError: If ``name`` is already registered.
        """
        if name in self._registrations:
            raise ValueError(f"Health check '{name}' is already registered")
        self._registrations[name] = HealthCheckRegistration(name, check, frozenset(tags))

    async def run(self, predicate: Predicate | None = None) -> HealthReport:
        """Run every check accepted by ``predicate`` (all checks when None)."""
        started = time.perf_counter()
        entries: dict[str, HealthReportEntry] = {}

        for registration in self._registrations.values():
            if predicate is not None and not predicate(registration):
                continue
            entries[registration.name] = await self._run_one(registration)

        report = HealthReport(entries, timedelta(seconds=time.perf_counter() - started))
        logger.debug(f"Health report: {report.status.value} ({len(entries)} checks)")
        return report

    @staticmethod
    async def _run_one(registration: HealthCheckRegistration) -> HealthReportEntry:
        started = time.perf_counter()
        try:
            result = registration.check()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:  # noqa: BLE001
            logger.warning(f"Health check '{registration.name}' failed: {e}")
            result = HealthCheckResult(
                HealthStatus.UNHEALTHY, description=str(e), exception=type(e).__name__
            )

        return HealthReportEntry(
            status=result.status,
            duration=timedelta(seconds=time.perf_counter() - started),
            tags=registration.tags,
            description=result.description,
            data=result.data,
            exception=result.exception,
        )


def create_health_registry(databricks: DatabricksService) -> HealthCheckRegistry:
    """Create the registry with the service's default checks."""
    registry = HealthCheckRegistry()
    registry.register("self", lambda: HealthCheckResult.healthy("API is running"))
    registry.register(
        "weather_service",
        lambda: HealthCheckResult.healthy("Weather service is available"),
        tags=("weather", "service"),
    )

    async def databricks_check() -> HealthCheckResult:
        if await databricks.health_check():
            return HealthCheckResult.healthy("Databricks mock data source is available")
        return HealthCheckResult.degraded("Real Databricks connection not implemented")

    registry.register("databricks", databricks_check, tags=("ready", "databricks"))
    return registry
