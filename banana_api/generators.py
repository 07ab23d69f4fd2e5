"""Mock data generation for forecasts and banana analytics."""

import random
from collections import Counter, defaultdict
from collections.abc import Sequence
from datetime import date, timedelta

from .models import BananaAnalyticsSummary, BananaProduction, BananaSalesData, WeatherForecast

SUMMARIES = (
    "Freezing",
    "Bracing",
    "Chilly",
    "Cool",
    "Mild",
    "Warm",
    "Balmy",
    "Hot",
    "Sweltering",
    "Scorching",
)

REGIONS = (
    "Latin America",
    "Southeast Asia",
    "East Africa",
    "Caribbean",
    "Pacific Islands",
    "West Africa",
)

VARIETIES = ("Cavendish", "Plantain", "Red Banana", "Lady Finger", "Blue Java", "Burro")

COUNTRIES = (
    "Ecuador",
    "Philippines",
    "India",
    "China",
    "Brazil",
    "Indonesia",
    "Tanzania",
    "Costa Rica",
    "Colombia",
    "Guatemala",
)

MONTHS_PER_YEAR = 12

# Longest horizon whose last date stays representable for any start before 3000
MAX_FORECAST_DAYS = (date.max - date(3000, 1, 1)).days

_rng = random.Random()


def generate_forecasts(
    days: int, start: date | None = None, rng: random.Random | None = None
) -> list[WeatherForecast]:
    """Generate one forecast per day, starting the day after ``start``.

    Args:
        days: Number of forecasts to produce.
        start: Reference day, defaults to today.
        rng: Random source, defaults to a module-level generator.

    Returns:
        List of exactly ``days`` forecasts.

    Raises:
        ValueError: If ``days`` is negative or runs past the last representable date.
    """
    if days < 0:
        raise ValueError("days must be non-negative")

    rng = rng or _rng
    start = start or date.today()

    if days > (date.max - start).days:
        raise ValueError(f"days must not exceed {(date.max - start).days} from {start}")

    return [
        WeatherForecast(
            date=start + timedelta(days=offset),
            temperature_c=rng.randrange(-20, 55),
            summary=rng.choice(SUMMARIES),
        )
        for offset in range(1, days + 1)
    ]


def generate_production(
    year: int, regions: Sequence[str] = REGIONS, rng: random.Random | None = None
) -> list[BananaProduction]:
    """Generate a production record for every region and month of ``year``."""
    rng = rng or _rng

    return [
        BananaProduction(
            region=region,
            year=year,
            month=month,
            tons_produced=float(rng.randrange(10_000, 500_000)),
            average_quality_score=round(rng.random() * 2 + 3, 2),
            variety_name=rng.choice(VARIETIES),
            export_percentage=round(rng.random() * 60 + 20, 2),
        )
        for region in regions
        for month in range(1, MONTHS_PER_YEAR + 1)
    ]


def generate_sales(
    countries: Sequence[str] = COUNTRIES, rng: random.Random | None = None
) -> list[BananaSalesData]:
    """Generate one sales record per country."""
    rng = rng or _rng

    return [
        BananaSalesData(
            country=country,
            total_sales=round(rng.random() * 10_000_000 + 500_000, 2),
            total_bunches=rng.randrange(100_000, 5_000_000),
            average_price=round(rng.random() * 3 + 1, 2),
            market_share=round(rng.random() * 25 + 5, 2),
        )
        for country in countries
    ]


def summarize(
    productions: Sequence[BananaProduction],
    sales: Sequence[BananaSalesData],
    returned: Sequence[BananaProduction] | None = None,
) -> BananaAnalyticsSummary:
    """Reduce generated collections to summary statistics.

    Args:
        productions: Full production generation.
        sales: Sales records.
        returned: Production records actually sent to the client. Tonnage is
            totalled over these; defaults to ``productions``.

    Returns:
        Summary with totals, averages and arg-max groupings.

    Raises:
        ValueError: If ``productions`` is empty.
    """
    if not productions:
        raise ValueError("Cannot summarize an empty production set")

    if returned is None:
        returned = productions

    tons_by_region: dict[str, float] = defaultdict(float)
    for record in productions:
        tons_by_region[record.region] += record.tons_produced

    # max() keeps the first maximal key, so ties go to the first group seen
    top_region = max(tons_by_region, key=tons_by_region.__getitem__)
    top_variety = Counter(record.variety_name for record in productions).most_common(1)[0][0]

    return BananaAnalyticsSummary(
        total_production_tons=sum(record.tons_produced for record in returned),
        global_average_quality=round(
            sum(record.average_quality_score for record in productions) / len(productions), 2
        ),
        total_revenue=sum(record.total_sales for record in sales),
        countries_served=len(sales),
        top_producing_region=top_region,
        most_popular_variety=top_variety,
    )
