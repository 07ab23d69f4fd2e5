"""Query handlers and the in-process mediator that routes queries to them."""

from typing import Any, Protocol

from loguru import logger

from .logging_config import sanitize_for_logging
from .models import BananaAnalytics, BananaProduction, BananaSalesData, WeatherForecast
from .queries import (
    GetBananaAnalyticsQuery,
    GetBananaProductionQuery,
    GetBananaSalesQuery,
    GetWeatherForecastQuery,
)
from .repositories import BananaAnalyticsRepository, WeatherForecastRepository


class QueryHandler(Protocol):
    """Protocol for query handlers."""

    async def handle(self, query: Any) -> Any: ...


class GetWeatherForecastQueryHandler:
    """Retrieves forecasts from the weather repository."""

    def __init__(self, repository: WeatherForecastRepository) -> None:
        self.repository = repository

    async def handle(self, query: GetWeatherForecastQuery) -> list[WeatherForecast]:
        logger.info(f"Handling GetWeatherForecastQuery for {query.days} days")

        forecasts = await self.repository.get_forecasts(query.days)

        logger.info(f"Successfully retrieved {len(forecasts)} weather forecast entries")
        return forecasts


class GetBananaAnalyticsQueryHandler:
    """Retrieves the analytics dashboard payload."""

    def __init__(self, repository: BananaAnalyticsRepository) -> None:
        self.repository = repository

    async def handle(self, query: GetBananaAnalyticsQuery) -> BananaAnalytics:
        logger.info("Handling GetBananaAnalyticsQuery")

        analytics = await self.repository.get_banana_analytics()

        summary = analytics.summary
        logger.info(
            f"Retrieved banana analytics: {summary.total_production_tons} tons produced, "
            f"{summary.total_revenue} revenue, {summary.countries_served} countries served"
        )
        return analytics


class GetBananaProductionQueryHandler:
    """Retrieves production records for one year."""

    def __init__(self, repository: BananaAnalyticsRepository) -> None:
        self.repository = repository

    async def handle(self, query: GetBananaProductionQuery) -> list[BananaProduction]:
        logger.info(f"Handling GetBananaProductionQuery for year {query.year}")

        production = await self.repository.get_production_data(query.year)

        logger.info(f"Retrieved {len(production)} production records for year {query.year}")
        return production


class GetBananaSalesQueryHandler:
    """Retrieves sales records, defaulting to the global region."""

    def __init__(self, repository: BananaAnalyticsRepository) -> None:
        self.repository = repository

    async def handle(self, query: GetBananaSalesQuery) -> list[BananaSalesData]:
        region = query.region or "Global"
        logger.info(f"Handling GetBananaSalesQuery for region {sanitize_for_logging(region)}")

        sales = await self.repository.get_sales_data(region)

        logger.info(f"Retrieved {len(sales)} sales records")
        return sales


class Mediator:
    """Routes each query to the handler registered for its type."""

    def __init__(self) -> None:
        self._handlers: dict[type, QueryHandler] = {}

    def register(self, query_type: type, handler: QueryHandler) -> None:
        """Register ``handler`` for queries of ``query_type``.

        Raises:
            ValueError: If a handler is already registered for the type.
        """
        if query_type in self._handlers:
            raise ValueError(f"Handler already registered for {query_type.__name__}")
        self._handlers[query_type] = handler

    async def send(self, query: Any) -> Any:
        """Dispatch a query and return the handler's result unchanged.

        Raises:
            LookupError: If no handler is registered for the query's type.
        """
        handler = self._handlers.get(type(query))
        if handler is None:
            raise LookupError(f"No handler registered for {type(query).__name__}")
        return await handler.handle(query)


def create_mediator(
    weather_repository: WeatherForecastRepository,
    analytics_repository: BananaAnalyticsRepository,
) -> Mediator:
    """Create a mediator with every query handler registered."""
    mediator = Mediator()
    mediator.register(GetWeatherForecastQuery, GetWeatherForecastQueryHandler(weather_repository))
    mediator.register(GetBananaAnalyticsQuery, GetBananaAnalyticsQueryHandler(analytics_repository))
    mediator.register(
        GetBananaProductionQuery, GetBananaProductionQueryHandler(analytics_repository)
    )
    mediator.register(GetBananaSalesQuery, GetBananaSalesQueryHandler(analytics_repository))
    return mediator
