"""Repository protocols and their in-process implementations."""

from typing import Protocol

from loguru import logger

from .databricks import DatabricksService
from .generators import generate_forecasts
from .logging_config import sanitize_for_logging
from .models import BananaAnalytics, BananaProduction, BananaSalesData, WeatherForecast


class WeatherForecastRepository(Protocol):
    """Repository protocol for weather forecasts."""

    async def get_forecasts(self, days: int) -> list[WeatherForecast]:
        """Get forecasts for the next ``days`` days."""
        ...


class BananaAnalyticsRepository(Protocol):
    """Repository protocol for banana analytics."""

    async def get_banana_analytics(self) -> BananaAnalytics:
        """Get the analytics dashboard payload."""
        ...

    async def get_production_data(self, year: int) -> list[BananaProduction]:
        """Get production records for a year."""
        ...

    async def get_sales_data(self, region: str) -> list[BananaSalesData]:
        """Get sales records for a region."""
        ...


class InMemoryWeatherForecastRepository:
    """Generates forecasts on every call."""

    async def get_forecasts(self, days: int) -> list[WeatherForecast]:
        logger.debug(f"Generating {days} weather forecasts")
        return generate_forecasts(days)


class DatabricksBananaAnalyticsRepository:
    """Adapter exposing a DatabricksService through the repository protocol."""

    def __init__(self, service: DatabricksService) -> None:
        self.service = service

    async def get_banana_analytics(self) -> BananaAnalytics:
        logger.debug("Fetching banana analytics from Databricks service")
        return await self.service.get_banana_analytics()

    async def get_production_data(self, year: int) -> list[BananaProduction]:
        logger.debug(f"Fetching banana production data for year {year}")
        return await self.service.get_production_data(year)

    async def get_sales_data(self, region: str) -> list[BananaSalesData]:
        logger.debug(f"Fetching banana sales data for region {sanitize_for_logging(region)}")
        return await self.service.get_sales_data(region)


def create_weather_repository() -> WeatherForecastRepository:
    """Create the weather forecast repository."""
    return InMemoryWeatherForecastRepository()


def create_analytics_repository(service: DatabricksService) -> BananaAnalyticsRepository:
    """Create the analytics repository backed by Databricks."""
    logger.info(f"Using Databricks analytics (Mock Mode: {service.mock_mode})")
    return DatabricksBananaAnalyticsRepository(service)
