"""Databricks analytics data source.

Only mock mode exists: records are generated in memory after a short random
delay that imitates warehouse query time. Selecting the real warehouse raises
``DataSourceNotImplementedError``.
"""

import asyncio
import random
from datetime import UTC, datetime

from loguru import logger
from opentelemetry import trace
from opentelemetry.trace import Span, Status, StatusCode

from .config import Settings
from .exceptions import DataSourceError, DataSourceNotImplementedError
from .generators import generate_production, generate_sales, summarize
from .logging_config import sanitize_for_logging
from .models import BananaAnalytics, BananaProduction, BananaSalesData

MOCK_DATA_SOURCE = "Databricks SQL Warehouse (Mock)"

tracer = trace.get_tracer("GrafanaBanana.Databricks")

# Failures are recorded by _record_failure
SPAN_OPTIONS = {"record_exception": False, "set_status_on_exception": False}


class DatabricksService:
    """Retrieves banana analytics, generating them in mock mode."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def mock_mode(self) -> bool:
        return self.settings.databricks_mock_mode

    async def get_banana_analytics(self) -> BananaAnalytics:
        """Build the analytics dashboard payload."""
        with tracer.start_as_current_span("GetBananaAnalytics", **SPAN_OPTIONS) as span:
            span.set_attribute("databricks.mock_mode", self.mock_mode)
            logger.info(f"Fetching banana analytics from Databricks (Mock Mode: {self.mock_mode})")

            try:
                self._require_mock_mode(span)
                span.add_event("Generating mock data")
                return await self._generate_mock_analytics()
            except Exception as e:
                self._record_failure(span, e, "Error fetching banana analytics from Databricks")
                raise

    async def get_production_data(self, year: int) -> list[BananaProduction]:
        """Production records for every region and month of ``year``."""
        with tracer.start_as_current_span("GetProductionData", **SPAN_OPTIONS) as span:
            span.set_attribute("databricks.query_year", year)
            span.set_attribute("databricks.mock_mode", self.mock_mode)
            logger.info(f"Fetching banana production data for year {year}")

            try:
                self._require_mock_mode(span)
                await self._simulate_query(50, 200)
                productions = generate_production(year)
            except Exception as e:
                self._record_failure(span, e, "Error fetching banana production data")
                raise

            span.set_attribute("databricks.records_returned", len(productions))
            logger.info(f"Retrieved {len(productions)} production records")
            return productions

    async def get_sales_data(self, region: str) -> list[BananaSalesData]:
        """Sales records for the fixed country list."""
        with tracer.start_as_current_span("GetSalesData", **SPAN_OPTIONS) as span:
            span.set_attribute("databricks.query_region", region)
            span.set_attribute("databricks.mock_mode", self.mock_mode)
            logger.info(
                f"Fetching banana sales data for region {sanitize_for_logging(region)}"
            )

            try:
                self._require_mock_mode(span)
                await self._simulate_query(50, 150)
                sales = generate_sales()
            except Exception as e:
                self._record_failure(span, e, "Error fetching banana sales data")
                raise

            span.set_attribute("databricks.records_returned", len(sales))
            logger.info(f"Retrieved {len(sales)} sales records")
            return sales

    async def health_check(self) -> bool:
        """Report whether a usable data path is configured."""
        return self.mock_mode

    async def _generate_mock_analytics(self) -> BananaAnalytics:
        logger.info("Generating mock banana analytics data")

        await self._simulate_query(100, 500)

        productions = await self.get_production_data(datetime.now(UTC).year)
        sales = await self.get_sales_data("Global")

        returned = productions[: self.settings.analytics_production_limit]
        summary = summarize(productions, sales, returned=returned)

        logger.info(
            f"Generated mock analytics: {summary.total_production_tons} tons, "
            f"{summary.total_revenue} revenue, {summary.countries_served} countries"
        )

        return BananaAnalytics(
            generated_at=datetime.now(UTC),
            data_source=MOCK_DATA_SOURCE,
            productions=returned,
            sales=sales,
            summary=summary,
        )

    def _require_mock_mode(self, span: Span) -> None:
        if not self.mock_mode:
            host = self.settings.databricks_server_hostname or "<unset>"
            span.set_attribute("databricks.server_hostname", host)
            span.set_attribute("databricks.http_path", self.settings.databricks_http_path)
            span.add_event("Querying Databricks")
            raise DataSourceNotImplementedError(
                f"Real Databricks connection to {host} not implemented. Set mock mode to true."
            )

    async def _simulate_query(self, low_ms: int, high_ms: int) -> None:
        if not self.settings.databricks_simulate_latency:
            return

        timeout = self.settings.databricks_query_timeout
        try:
            async with asyncio.timeout(timeout):
                await asyncio.sleep(random.randint(low_ms, high_ms) / 1000)
        except TimeoutError as e:
            raise DataSourceError(f"Databricks query exceeded the {timeout}s timeout") from e

    @staticmethod
    def _record_failure(span: Span, error: Exception, message: str) -> None:
        logger.error(f"{message}: {error}")
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, str(error)))
