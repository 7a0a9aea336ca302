"""Data source factories for plugging different environmental data backends."""

from .base import CallableEnvironmentalDataSource, EnvironmentalDataSource
from .factory import build_data_source
from .open_meteo_client import (
    AirHour,
    ArchiveDay,
    ClimateDay,
    PollenHour,
    RiverDischargeDay,
    WeatherDay,
    WeatherForecast,
    WeatherHour,
)

__all__ = [
    "build_data_source",
    "EnvironmentalDataSource",
    "CallableEnvironmentalDataSource",
    "AirHour",
    "ArchiveDay",
    "ClimateDay",
    "PollenHour",
    "RiverDischargeDay",
    "WeatherDay",
    "WeatherForecast",
    "WeatherHour",
]
