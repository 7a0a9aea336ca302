"""Climate history, flood risk and projection helpers.

Historical numbers come from the Open-Meteo climate-model API and flood risk
from its river discharge forecast. Projections are a labelled placeholder:
deterministic linear trends until a real scenario archive is wired in.
"""

from __future__ import annotations

import datetime as dt
from collections import OrderedDict
from typing import Dict, List

from ecosense import config
from ecosense.data_sources import EnvironmentalDataSource
from ecosense.data_sources.open_meteo_client import ClimateDay, RiverDischargeDay
from ecosense.domain import (
    ClimateProjections,
    ClimateSummary,
    ExtremeEvents,
    FloodForecastDay,
    FloodRisk,
    FloodRiskReport,
    YearlySeries,
)
from ecosense.errors import UpstreamFetchError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="climate")

CLIMATE_MODEL = "MPI_ESM1_2_XR"
CLIMATE_START = dt.date(1990, 1, 1)
CLIMATE_END = dt.date(2023, 12, 31)

HEATWAVE_TEMP_C = 35.0
HEATWAVE_MIN_DAYS = 3
HEAVY_RAIN_MM = 100.0
DRY_DAY_MM = 1.0
DROUGHT_MIN_DAYS = 30

FLOOD_FORECAST_DAYS = 10
FLOOD_OUTLOOK_DAYS = 7

PLACEHOLDER_SOURCE = "placeholder"
PROJECTION_YEARS = 28
PROJECTION_BASE_TEMP_C = 25.5
# degrees C per year
PROJECTION_SLOPES = {"optimistic": 0.035, "moderate": 0.065, "pessimistic": 0.09}


def _count_runs(flags: List[bool], min_length: int) -> int:
    """Number of runs of consecutive True values at least `min_length` long."""
    runs = 0
    length = 0
    for flag in flags + [False]:
        if flag:
            length += 1
            continue
        if length >= min_length:
            runs += 1
        length = 0
    return runs


def _daily_mean(day: ClimateDay) -> float | None:
    if day.temperature_mean is not None:
        return day.temperature_mean
    if day.temperature_max is not None and day.temperature_min is not None:
        return (day.temperature_max + day.temperature_min) / 2
    return None


def summarize_climate(days: List[ClimateDay], *, model: str = CLIMATE_MODEL) -> ClimateSummary:
    """Aggregate daily model output into yearly means, totals and extreme-event counts.

    Heatwaves are runs of at least three days at or above 35°C, floods are days
    with at least 100 mm of rain, droughts are dry spells of 30+ days.
    """
    by_year: Dict[int, List[ClimateDay]] = OrderedDict()
    for day in sorted(days, key=lambda d: d.date):
        by_year.setdefault(day.date.year, []).append(day)

    years: List[int] = []
    temps: List[float] = []
    precip: List[float] = []
    heatwaves: List[int] = []
    floods: List[int] = []
    droughts: List[int] = []

    for year, year_days in by_year.items():
        means = [m for m in (_daily_mean(d) for d in year_days) if m is not None]
        if not means:
            logger.debug("Skipping year without temperature data", extra={"year": year})
            continue
        rain = [d.precipitation_sum for d in year_days]
        years.append(year)
        temps.append(round(sum(means) / len(means), 1))
        precip.append(round(sum(r for r in rain if r is not None)))
        heatwaves.append(
            _count_runs([d.temperature_max is not None and d.temperature_max >= HEATWAVE_TEMP_C for d in year_days],
                        HEATWAVE_MIN_DAYS)
        )
        floods.append(sum(1 for r in rain if r is not None and r >= HEAVY_RAIN_MM))
        droughts.append(_count_runs([r is not None and r < DRY_DAY_MM for r in rain], DROUGHT_MIN_DAYS))

    return ClimateSummary(
        model=model,
        temperature=YearlySeries(years=years, values=temps),
        precipitation=YearlySeries(years=years, values=precip),
        extreme_events=ExtremeEvents(years=years, heatwaves=heatwaves, floods=floods, droughts=droughts),
    )


def get_climate_summary(
    data_source: EnvironmentalDataSource,
    *,
    settings: config.Settings | None = None,
) -> ClimateSummary:
    settings = settings or config.settings
    days = data_source.fetch_climate_days(
        settings.latitude,
        settings.longitude,
        start_date=CLIMATE_START,
        end_date=CLIMATE_END,
        model=CLIMATE_MODEL,
        timezone=settings.timezone,
    )
    if not days:
        raise UpstreamFetchError("Climate API returned no data", source="climate")
    return summarize_climate(days, model=CLIMATE_MODEL)


def classify_discharge(discharge: float) -> FloodRisk:
    """Map river discharge (m³/s) to a flood risk level."""
    if discharge > 1000:
        return FloodRisk.SEVERE
    if discharge > 700:
        return FloodRisk.HIGH
    if discharge > 400:
        return FloodRisk.MODERATE
    return FloodRisk.LOW


def build_flood_report(days: List[RiverDischargeDay], *, today: dt.date) -> FloodRiskReport:
    """Risk for today plus the following week. Days without a discharge value are left out."""
    upcoming = [d for d in sorted(days, key=lambda d: d.date) if d.date >= today][:FLOOD_OUTLOOK_DAYS]
    if not upcoming or upcoming[0].river_discharge is None:
        raise UpstreamFetchError("Flood API returned no discharge for today", source="flood")

    current = upcoming[0].river_discharge
    forecast = [
        FloodForecastDay(date=d.date, discharge=d.river_discharge, risk=classify_discharge(d.river_discharge))
        for d in upcoming
        if d.river_discharge is not None
    ]
    return FloodRiskReport(risk=classify_discharge(current), discharge=current, forecast=forecast)


def get_flood_risk(
    data_source: EnvironmentalDataSource,
    *,
    settings: config.Settings | None = None,
    today: dt.date | None = None,
) -> FloodRiskReport:
    settings = settings or config.settings
    days = data_source.fetch_river_discharge(
        settings.latitude,
        settings.longitude,
        forecast_days=FLOOD_FORECAST_DAYS,
        timezone=settings.timezone,
    )
    return build_flood_report(days, today=today or dt.date.today())


def placeholder_projections(start_year: int | None = None, *, years: int = PROJECTION_YEARS) -> ClimateProjections:
    """Linear temperature scenarios labelled as placeholder data."""
    start_year = start_year or dt.date.today().year
    span = list(range(start_year, start_year + years))
    temperature = {
        scenario: [round(PROJECTION_BASE_TEMP_C + i * slope, 1) for i in range(years)]
        for scenario, slope in PROJECTION_SLOPES.items()
    }
    return ClimateProjections(source=PLACEHOLDER_SOURCE, years=span, temperature=temperature)
