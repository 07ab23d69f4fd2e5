"""Data models using Pydantic."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    """Immutable value record serialised with camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)


class WeatherForecast(Record):
    """A single day of forecast."""

    date: dt.date
    temperature_c: int = Field(..., ge=-273)
    summary: str | None = None

    @computed_field(alias="temperatureF")  # type: ignore[prop-decorator]
    @property
    def temperature_f(self) -> int:
        return 32 + round(self.temperature_c * 9 / 5)


class BananaProduction(Record):
    """Monthly production figures for one region."""

    region: str
    year: int
    month: int = Field(..., ge=1, le=12)
    tons_produced: float
    average_quality_score: float
    variety_name: str
    export_percentage: float


class BananaSalesData(Record):
    """Sales figures for one country."""

    country: str
    total_sales: float
    total_bunches: int
    average_price: float
    market_share: float


class BananaAnalyticsSummary(Record):
    """Aggregates derived from one analytics response."""

    total_production_tons: float
    global_average_quality: float
    total_revenue: float
    countries_served: int
    top_producing_region: str
    most_popular_variety: str


class BananaAnalytics(Record):
    """Dashboard payload combining production, sales and summary."""

    generated_at: dt.datetime
    data_source: str
    productions: list[BananaProduction]
    sales: list[BananaSalesData]
    summary: BananaAnalyticsSummary
