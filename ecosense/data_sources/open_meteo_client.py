"""Helpers for fetching weather, air-quality, climate and flood data from the Open-Meteo APIs."""
from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

import requests
import requests_cache
from retry_requests import retry

from ecosense.config import settings
from ecosense.errors import UpstreamFetchError
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="open_meteo_client")

cache_session = requests_cache.CachedSession(".cache", expire_after=settings.http_cache_seconds)
session = retry(cache_session, retries=settings.http_retries, backoff_factor=0.2)

OPEN_METEO_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
OPEN_METEO_AIR_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"
OPEN_METEO_ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"
OPEN_METEO_CLIMATE_URL = "https://climate-api.open-meteo.com/v1/climate"
OPEN_METEO_FLOOD_URL = "https://flood-api.open-meteo.com/v1/flood"

HOURLY_WEATHER_VARS = [
    "temperature_2m",
    "apparent_temperature",
    "relative_humidity_2m",
    "dew_point_2m",
    "precipitation_probability",
    "precipitation",
    "weather_code",
    "surface_pressure",
    "cloud_cover",
    "visibility",
    "is_day",
    "wind_speed_10m",
    "wind_direction_10m",
    "wind_gusts_10m",
    "uv_index",
]

DAILY_WEATHER_VARS = [
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "sunrise",
    "sunset",
    "precipitation_probability_max",
]

HOURLY_AIR_VARS = [
    "pm10",
    "pm2_5",
    "nitrogen_dioxide",
    "sulphur_dioxide",
    "ozone",
    "carbon_monoxide",
    "european_aqi",
    "uv_index",
]

HOURLY_POLLEN_VARS = [
    "birch_pollen",
    "alder_pollen",
    "grass_pollen",
    "mugwort_pollen",
    "olive_pollen",
    "ragweed_pollen",
]

EXPECTED_WEATHER_UNITS = {
    "temperature_2m": {"°C"},
    "apparent_temperature": {"°C"},
    "relative_humidity_2m": {"%", "percent"},
    "precipitation_probability": {"%", "percent"},
    "precipitation": {"mm"},
    "surface_pressure": {"hPa"},
    "visibility": {"m"},
    "wind_speed_10m": {"km/h"},
    "wind_gusts_10m": {"km/h"},
}

EXPECTED_AIR_UNITS = {
    "pm10": {"μg/m³", "µg/m³", "ug/m3"},
    "pm2_5": {"μg/m³", "µg/m³", "ug/m3"},
    "european_aqi": {"EAQI", "", "aqi"},
    "uv_index": {"", "index", "UV-index"},
}


@dataclass
class WeatherHour:
    """Normalized hourly weather reading returned by Open-Meteo."""
    time: dt.datetime  # timezone-aware
    temperature: Optional[float]
    apparent_temperature: Optional[float]
    relative_humidity: Optional[float]
    dew_point: Optional[float]
    precipitation_probability: Optional[float]
    precipitation: Optional[float]
    weather_code: Optional[int]
    surface_pressure: Optional[float]
    cloud_cover: Optional[float]
    visibility: Optional[float]
    is_day: Optional[int]
    wind_speed: Optional[float]
    wind_direction: Optional[float]
    wind_gusts: Optional[float]
    uv_index: Optional[float]


@dataclass
class WeatherDay:
    """Daily forecast summary."""
    date: dt.date
    weather_code: Optional[int]
    temperature_max: Optional[float]
    temperature_min: Optional[float]
    sunrise: Optional[dt.datetime]
    sunset: Optional[dt.datetime]
    precipitation_probability_max: Optional[float]


@dataclass
class WeatherForecast:
    """Hourly and daily forecast from a single Open-Meteo call."""
    hours: List[WeatherHour]
    days: List[WeatherDay]


@dataclass
class AirHour:
    """Normalized hourly air-quality reading returned by Open-Meteo."""
    time: dt.datetime  # timezone-aware
    pm10: Optional[float]
    pm2_5: Optional[float]
    nitrogen_dioxide: Optional[float]
    sulphur_dioxide: Optional[float]
    ozone: Optional[float]
    carbon_monoxide: Optional[float]
    european_aqi: Optional[float]
    uv_index: Optional[float]


@dataclass
class PollenHour:
    """Hourly pollen counts (grains/m³)."""
    time: dt.datetime
    birch: Optional[float]
    alder: Optional[float]
    grass: Optional[float]
    mugwort: Optional[float]
    olive: Optional[float]
    ragweed: Optional[float]


@dataclass
class ArchiveDay:
    """Observed (reanalysis) daily weather from the archive API."""
    date: dt.date
    temperature_max: Optional[float]
    temperature_min: Optional[float]
    temperature_mean: Optional[float]
    precipitation_sum: Optional[float]
    rain_sum: Optional[float]
    weather_code: Optional[int]


@dataclass
class ClimateDay:
    """Daily climate-model output."""
    date: dt.date
    temperature_max: Optional[float]
    temperature_min: Optional[float]
    temperature_mean: Optional[float]
    precipitation_sum: Optional[float]


@dataclass
class RiverDischargeDay:
    """Daily modelled river discharge (m³/s) from the flood API."""
    date: dt.date
    river_discharge: Optional[float]


def _iso_to_dt_with_tz(s: str, tz_name: str) -> dt.datetime:
    """Interpret Open-Meteo local time string as being in tz_name."""
    naive = dt.datetime.fromisoformat(s)
    return naive.replace(tzinfo=ZoneInfo(tz_name))


def _optional_dt(s: str | None, tz_name: str) -> dt.datetime | None:
    return _iso_to_dt_with_tz(s, tz_name) if s else None


def _column(block: dict, name: str, length: int) -> list:
    """Return a column from an hourly/daily block, padding with None when the API omitted it."""
    values = block.get(name)
    if values is None:
        return [None] * length
    return values


def _warn_on_unexpected_units(units: dict, expected: dict[str, set[str]], *, context: str) -> None:
    """Log a warning if Open-Meteo returns units we did not request/expect."""
    if not units:
        return
    for field, allowed in expected.items():
        actual = units.get(field)
        if actual is None or actual in allowed:
            continue
        logger.warning(
            "Unexpected Open-Meteo unit",
            extra={"context": context, "field": field, "unit": actual, "allowed": sorted(allowed)},
        )


def _get_json(url: str, params: dict[str, Any], *, context: str) -> dict:
    """GET an Open-Meteo endpoint and return the decoded body, mapping every failure to UpstreamFetchError."""
    try:
        resp = session.get(url, params=params, timeout=settings.http_timeout_seconds)
        resp.raise_for_status()
        return resp.json()
    except requests.exceptions.RequestException as exc:
        logger.warning("Open-Meteo request failed", extra={"context": context, "error": str(exc)})
        raise UpstreamFetchError(f"Open-Meteo {context} request failed", source=context) from exc
    except ValueError as exc:
        logger.warning("Open-Meteo returned non-JSON body", extra={"context": context})
        raise UpstreamFetchError(f"Open-Meteo {context} returned an unreadable response", source=context) from exc


def _block(data: dict, key: str, *, context: str) -> dict:
    """Pull a required block (hourly/daily) out of a response."""
    block = data.get(key) if isinstance(data, dict) else None
    if not block or "time" not in block:
        raise UpstreamFetchError(f"Open-Meteo {context} response is missing '{key}' data", source=context)
    return block


def fetch_forecast(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "Asia/Ho_Chi_Minh",
    forecast_days: int = 7,
) -> WeatherForecast:
    """Fetch `forecast_days` of hourly and daily weather (starting at local midnight today)."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "hourly": ",".join(HOURLY_WEATHER_VARS),
        "daily": ",".join(DAILY_WEATHER_VARS),
        "forecast_days": forecast_days,
        "timezone": timezone,
    }
    data = _get_json(OPEN_METEO_FORECAST_URL, params, context="forecast")

    hourly = _block(data, "hourly", context="forecast")
    daily = _block(data, "daily", context="forecast")
    _warn_on_unexpected_units(data.get("hourly_units", {}), EXPECTED_WEATHER_UNITS, context="forecast_hourly")

    times = hourly["time"]
    n = len(times)
    temp = _column(hourly, "temperature_2m", n)
    apparent = _column(hourly, "apparent_temperature", n)
    humidity = _column(hourly, "relative_humidity_2m", n)
    dew_point = _column(hourly, "dew_point_2m", n)
    precip_prob = _column(hourly, "precipitation_probability", n)
    precip = _column(hourly, "precipitation", n)
    code = _column(hourly, "weather_code", n)
    pressure = _column(hourly, "surface_pressure", n)
    cloud = _column(hourly, "cloud_cover", n)
    visibility = _column(hourly, "visibility", n)
    is_day = _column(hourly, "is_day", n)
    wind_speed = _column(hourly, "wind_speed_10m", n)
    wind_dir = _column(hourly, "wind_direction_10m", n)
    wind_gusts = _column(hourly, "wind_gusts_10m", n)
    uv = _column(hourly, "uv_index", n)

    hours: List[WeatherHour] = []
    for i, t in enumerate(times):
        hours.append(
            WeatherHour(
                time=_iso_to_dt_with_tz(t, timezone),
                temperature=temp[i],
                apparent_temperature=apparent[i],
                relative_humidity=humidity[i],
                dew_point=dew_point[i],
                precipitation_probability=precip_prob[i],
                precipitation=precip[i],
                weather_code=code[i],
                surface_pressure=pressure[i],
                cloud_cover=cloud[i],
                visibility=visibility[i],
                is_day=is_day[i],
                wind_speed=wind_speed[i],
                wind_direction=wind_dir[i],
                wind_gusts=wind_gusts[i],
                uv_index=uv[i],
            )
        )

    dates = daily["time"]
    m = len(dates)
    d_code = _column(daily, "weather_code", m)
    d_max = _column(daily, "temperature_2m_max", m)
    d_min = _column(daily, "temperature_2m_min", m)
    sunrise = _column(daily, "sunrise", m)
    sunset = _column(daily, "sunset", m)
    d_precip = _column(daily, "precipitation_probability_max", m)

    days: List[WeatherDay] = []
    for i, d in enumerate(dates):
        days.append(
            WeatherDay(
                date=dt.date.fromisoformat(d),
                weather_code=d_code[i],
                temperature_max=d_max[i],
                temperature_min=d_min[i],
                sunrise=_optional_dt(sunrise[i], timezone),
                sunset=_optional_dt(sunset[i], timezone),
                precipitation_probability_max=d_precip[i],
            )
        )

    logger.debug("Parsed forecast", extra={"hours": len(hours), "days": len(days)})
    return WeatherForecast(hours=hours, days=days)


def fetch_air_hours(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "Asia/Ho_Chi_Minh",
    forecast_days: int = 7,
) -> List[AirHour]:
    """Fetch hourly air-quality forecast (pollutants, European AQI, UV)."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "hourly": ",".join(HOURLY_AIR_VARS),
        "forecast_days": forecast_days,
        "timezone": timezone,
    }
    data = _get_json(OPEN_METEO_AIR_URL, params, context="air_quality")

    hourly = _block(data, "hourly", context="air_quality")
    _warn_on_unexpected_units(data.get("hourly_units", {}), EXPECTED_AIR_UNITS, context="air_hourly")

    times = hourly["time"]
    n = len(times)
    pm10 = _column(hourly, "pm10", n)
    pm25 = _column(hourly, "pm2_5", n)
    no2 = _column(hourly, "nitrogen_dioxide", n)
    so2 = _column(hourly, "sulphur_dioxide", n)
    ozone = _column(hourly, "ozone", n)
    co = _column(hourly, "carbon_monoxide", n)
    aqi = _column(hourly, "european_aqi", n)
    uv = _column(hourly, "uv_index", n)

    out: List[AirHour] = []
    for i, t in enumerate(times):
        out.append(
            AirHour(
                time=_iso_to_dt_with_tz(t, timezone),
                pm10=pm10[i],
                pm2_5=pm25[i],
                nitrogen_dioxide=no2[i],
                sulphur_dioxide=so2[i],
                ozone=ozone[i],
                carbon_monoxide=co[i],
                european_aqi=aqi[i],
                uv_index=uv[i],
            )
        )
    return out


def fetch_pollen_hours(
    latitude: float,
    longitude: float,
    *,
    timezone: str = "Asia/Ho_Chi_Minh",
    forecast_days: int = 7,
) -> List[PollenHour]:
    """Fetch hourly pollen counts from the air-quality API."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "hourly": ",".join(HOURLY_POLLEN_VARS),
        "forecast_days": forecast_days,
        "timezone": timezone,
    }
    data = _get_json(OPEN_METEO_AIR_URL, params, context="pollen")
    hourly = _block(data, "hourly", context="pollen")

    times = hourly["time"]
    n = len(times)
    cols = {name: _column(hourly, f"{name}_pollen", n) for name in ("birch", "alder", "grass", "mugwort", "olive", "ragweed")}
    return [
        PollenHour(time=_iso_to_dt_with_tz(t, timezone), **{name: col[i] for name, col in cols.items()})
        for i, t in enumerate(times)
    ]


def fetch_archive_days(
    latitude: float,
    longitude: float,
    *,
    start_date: dt.date,
    end_date: dt.date,
    timezone: str = "Asia/Ho_Chi_Minh",
) -> List[ArchiveDay]:
    """Fetch observed daily weather between two dates (inclusive)."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "daily": "temperature_2m_max,temperature_2m_min,temperature_2m_mean,precipitation_sum,rain_sum,weather_code",
        "timezone": timezone,
    }
    data = _get_json(OPEN_METEO_ARCHIVE_URL, params, context="archive")
    daily = _block(data, "daily", context="archive")

    dates = daily["time"]
    n = len(dates)
    t_max = _column(daily, "temperature_2m_max", n)
    t_min = _column(daily, "temperature_2m_min", n)
    t_mean = _column(daily, "temperature_2m_mean", n)
    precip = _column(daily, "precipitation_sum", n)
    rain = _column(daily, "rain_sum", n)
    code = _column(daily, "weather_code", n)
    return [
        ArchiveDay(
            date=dt.date.fromisoformat(d),
            temperature_max=t_max[i],
            temperature_min=t_min[i],
            temperature_mean=t_mean[i],
            precipitation_sum=precip[i],
            rain_sum=rain[i],
            weather_code=code[i],
        )
        for i, d in enumerate(dates)
    ]


def fetch_climate_days(
    latitude: float,
    longitude: float,
    *,
    start_date: dt.date,
    end_date: dt.date,
    model: str = "MPI_ESM1_2_XR",
    timezone: str = "Asia/Ho_Chi_Minh",
) -> List[ClimateDay]:
    """Fetch daily climate-model output between two dates."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "models": model,
        "daily": "temperature_2m_max,temperature_2m_min,temperature_2m_mean,precipitation_sum",
        "timezone": timezone,
    }
    data = _get_json(OPEN_METEO_CLIMATE_URL, params, context="climate")
    daily = _block(data, "daily", context="climate")

    dates = daily["time"]
    n = len(dates)
    t_max = _column(daily, "temperature_2m_max", n)
    t_min = _column(daily, "temperature_2m_min", n)
    t_mean = _column(daily, "temperature_2m_mean", n)
    precip = _column(daily, "precipitation_sum", n)
    return [
        ClimateDay(
            date=dt.date.fromisoformat(d),
            temperature_max=t_max[i],
            temperature_min=t_min[i],
            temperature_mean=t_mean[i],
            precipitation_sum=precip[i],
        )
        for i, d in enumerate(dates)
    ]


def fetch_river_discharge(
    latitude: float,
    longitude: float,
    *,
    forecast_days: int = 10,
    timezone: str = "Asia/Ho_Chi_Minh",
) -> List[RiverDischargeDay]:
    """Fetch the daily river discharge forecast for the nearest modelled river."""
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "daily": "river_discharge",
        "forecast_days": forecast_days,
        "timezone": timezone,
    }
    data = _get_json(OPEN_METEO_FLOOD_URL, params, context="flood")
    daily = _block(data, "daily", context="flood")

    dates = daily["time"]
    discharge = _column(daily, "river_discharge", len(dates))
    return [
        RiverDischargeDay(date=dt.date.fromisoformat(d), river_discharge=discharge[i])
        for i, d in enumerate(dates)
    ]
