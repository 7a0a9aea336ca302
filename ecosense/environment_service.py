"""Merge weather and air-quality data into an immutable environmental snapshot."""
from __future__ import annotations

import datetime as dt
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from ecosense import config
from ecosense.data_sources import EnvironmentalDataSource, build_data_source
from ecosense.data_sources.open_meteo_client import AirHour, WeatherDay, WeatherForecast, WeatherHour
from ecosense.domain import EnvironmentalDay, EnvironmentalHour, EnvironmentalSnapshot
from ecosense.errors import UpstreamFetchError
from ecosense.recommendation_engine import aqi_category, weather_description
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="environment_service")

# Readings the rule evaluator cannot work without.
REQUIRED_CURRENT_FIELDS = ("temperature", "aqi", "uv_index", "precipitation_probability")

DISPLAY_HOURS = 24


def _normalize_is_day(value: Optional[object]) -> Optional[bool]:
    """Normalize Open-Meteo is_day values (0/1, bool, string) into bool or None."""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(int(value))
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"1", "true", "t", "yes", "y"}:
            return True
        if lowered in {"0", "false", "f", "no", "n"}:
            return False
    logger.debug("Unrecognized is_day value; treating as unknown", extra={"is_day": value})
    return None


def _index_air_by_time(air: List[AirHour]) -> Dict[dt.datetime, AirHour]:
    """Index air-quality hours by timestamp."""
    return {a.time: a for a in air}


def merge_hour(weather: WeatherHour, air: AirHour | None) -> EnvironmentalHour:
    """Merge one weather hour with the matching air-quality hour (if any).

    UV comes from the air-quality feed when present, otherwise from the weather feed.
    """
    uv = air.uv_index if air is not None and air.uv_index is not None else weather.uv_index
    return EnvironmentalHour(
        time=weather.time,
        temperature=weather.temperature,
        apparent_temperature=weather.apparent_temperature,
        relative_humidity=weather.relative_humidity,
        precipitation_probability=weather.precipitation_probability,
        precipitation=weather.precipitation,
        weather_code=weather.weather_code,
        surface_pressure=weather.surface_pressure,
        cloud_cover=weather.cloud_cover,
        visibility=weather.visibility,
        is_day=_normalize_is_day(weather.is_day),
        wind_speed=weather.wind_speed,
        wind_direction=weather.wind_direction,
        wind_gusts=weather.wind_gusts,
        uv_index=uv,
        aqi=air.european_aqi if air else None,
        pm2_5=air.pm2_5 if air else None,
        pm10=air.pm10 if air else None,
        nitrogen_dioxide=air.nitrogen_dioxide if air else None,
        ozone=air.ozone if air else None,
        sulphur_dioxide=air.sulphur_dioxide if air else None,
        carbon_monoxide=air.carbon_monoxide if air else None,
    )


def _to_day(day: WeatherDay) -> EnvironmentalDay:
    return EnvironmentalDay(
        date=day.date,
        weather_code=day.weather_code,
        temperature_max=day.temperature_max,
        temperature_min=day.temperature_min,
        sunrise=day.sunrise,
        sunset=day.sunset,
        precipitation_probability_max=day.precipitation_probability_max,
    )


def _current_index(hours: List[EnvironmentalHour], now: dt.datetime) -> int:
    """Index of the last hour starting at or before `now`."""
    idx = None
    for i, hour in enumerate(hours):
        if hour.time <= now:
            idx = i
        else:
            break
    if idx is None or now - hours[idx].time >= dt.timedelta(hours=1):
        raise UpstreamFetchError("Forecast does not cover the current hour", source="forecast")
    return idx


def build_snapshot(
    forecast: WeatherForecast,
    air_hours: List[AirHour],
    *,
    timezone: str,
    now: dt.datetime | None = None,
) -> EnvironmentalSnapshot:
    """Combine a forecast and an air-quality series into a snapshot anchored at `now`.

    Raises UpstreamFetchError when the series are empty, do not cover the current
    hour, or lack one of the readings the rule evaluator needs.
    """
    tz = ZoneInfo(timezone)
    now = (now or dt.datetime.now(tz)).astimezone(tz)

    if not forecast.hours:
        raise UpstreamFetchError("Forecast returned no hourly data", source="forecast")

    air_by_time = _index_air_by_time(air_hours)
    hours = [merge_hour(w, air_by_time.get(w.time)) for w in forecast.hours]
    current_index = _current_index(hours, now)

    current = hours[current_index]
    missing = [name for name in REQUIRED_CURRENT_FIELDS if getattr(current, name) is None]
    if missing:
        logger.warning("Current hour is missing readings", extra={"missing": missing, "time": current.time.isoformat()})
        raise UpstreamFetchError(f"Current readings unavailable: {', '.join(missing)}")

    snapshot = EnvironmentalSnapshot(
        observed_at=now,
        timezone=timezone,
        hours=tuple(hours),
        days=tuple(_to_day(d) for d in forecast.days),
        current_index=current_index,
    )
    logger.debug(
        "Built environmental snapshot",
        extra={"hours": len(hours), "days": len(snapshot.days), "current_index": current_index},
    )
    return snapshot


def fetch_forecast_and_air(
    data_source: EnvironmentalDataSource,
    settings: config.Settings,
) -> tuple[WeatherForecast, List[AirHour]]:
    """Issue the forecast and air-quality reads concurrently."""
    kwargs = {"timezone": settings.timezone, "forecast_days": settings.forecast_days}
    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="ecosense-fetch") as pool:
        forecast_future = pool.submit(
            data_source.fetch_forecast, settings.latitude, settings.longitude, **kwargs
        )
        air_future = pool.submit(
            data_source.fetch_air_hours, settings.latitude, settings.longitude, **kwargs
        )
        # .result() re-raises UpstreamFetchError from the worker thread
        return forecast_future.result(), air_future.result()


def get_environmental_snapshot(
    data_source: EnvironmentalDataSource | None = None,
    *,
    settings: config.Settings | None = None,
    now: dt.datetime | None = None,
) -> EnvironmentalSnapshot:
    """Fetch fresh data and build the snapshot for the configured location."""
    settings = settings or config.settings
    data_source = data_source or build_data_source(settings)
    logger.info(
        "Fetching environmental snapshot",
        extra={"latitude": settings.latitude, "longitude": settings.longitude, "timezone": settings.timezone},
    )
    forecast, air_hours = fetch_forecast_and_air(data_source, settings)
    return build_snapshot(forecast, air_hours, timezone=settings.timezone, now=now)


def current_weather_view(snapshot: EnvironmentalSnapshot) -> dict:
    """Shape the snapshot for the current-weather endpoint."""
    now = snapshot.current
    day_hours = snapshot.hours[:DISPLAY_HOURS]
    return {
        "current": {
            "time": now.time,
            "temperature": now.temperature,
            "weather_code": now.weather_code,
            "weather_description": weather_description(now.weather_code),
            "feels_like": now.apparent_temperature,
            "humidity": now.relative_humidity,
            "wind_speed": now.wind_speed,
            "wind_direction": now.wind_direction,
            "pressure": now.surface_pressure,
            "visibility": now.visibility,
            "is_day": now.is_day,
        },
        "hourly": {
            "time": [h.time for h in day_hours],
            "temperature": [h.temperature for h in day_hours],
            "weather_code": [h.weather_code for h in day_hours],
            "weather_description": [weather_description(h.weather_code) for h in day_hours],
        },
        "daily": {
            "time": [d.date for d in snapshot.days],
            "weather_code": [d.weather_code for d in snapshot.days],
            "temperature_max": [d.temperature_max for d in snapshot.days],
            "temperature_min": [d.temperature_min for d in snapshot.days],
            "sunrise": [d.sunrise for d in snapshot.days],
            "sunset": [d.sunset for d in snapshot.days],
            "precipitation_probability": [d.precipitation_probability_max for d in snapshot.days],
        },
    }


def air_quality_view(snapshot: EnvironmentalSnapshot) -> dict:
    """Shape the snapshot for the air-quality endpoint."""
    now = snapshot.current
    day_hours = snapshot.hours[:DISPLAY_HOURS]
    return {
        "current": {
            "time": now.time,
            "pm2_5": now.pm2_5,
            "pm10": now.pm10,
            "no2": now.nitrogen_dioxide,
            "o3": now.ozone,
            "so2": now.sulphur_dioxide,
            "co": now.carbon_monoxide,
            "aqi": now.aqi,
            "aqi_category": aqi_category(now.aqi),
        },
        "hourly": {
            "time": [h.time for h in day_hours],
            "pm2_5": [h.pm2_5 for h in day_hours],
            "pm10": [h.pm10 for h in day_hours],
            "aqi": [h.aqi for h in day_hours],
        },
    }
