"""Read-only query objects dispatched through the mediator."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GetWeatherForecastQuery:
    days: int = 5


@dataclass(frozen=True)
class GetBananaAnalyticsQuery:
    pass


@dataclass(frozen=True)
class GetBananaProductionQuery:
    year: int


@dataclass(frozen=True)
class GetBananaSalesQuery:
    region: str | None = "Global"
