"""Interfaces and helpers for environmental data sources."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Callable, List, Protocol

from ecosense.data_sources.open_meteo_client import (
    AirHour,
    ArchiveDay,
    ClimateDay,
    PollenHour,
    RiverDischargeDay,
    WeatherForecast,
)


class EnvironmentalDataSource(Protocol):
    """Interface for anything that can provide weather, air-quality, climate and flood data."""

    def fetch_forecast(
        self,
        latitude: float,
        longitude: float,
        *,
        timezone: str = "Asia/Ho_Chi_Minh",
        forecast_days: int = 7,
    ) -> WeatherForecast:
        """Return hourly and daily weather starting at local midnight today."""
        ...

    def fetch_air_hours(
        self,
        latitude: float,
        longitude: float,
        *,
        timezone: str = "Asia/Ho_Chi_Minh",
        forecast_days: int = 7,
    ) -> List[AirHour]:
        """Return hourly air-quality readings."""
        ...

    def fetch_pollen_hours(
        self,
        latitude: float,
        longitude: float,
        *,
        timezone: str = "Asia/Ho_Chi_Minh",
        forecast_days: int = 7,
    ) -> List[PollenHour]:
        """Return hourly pollen counts."""
        ...

    def fetch_archive_days(
        self,
        latitude: float,
        longitude: float,
        *,
        start_date: dt.date,
        end_date: dt.date,
        timezone: str = "Asia/Ho_Chi_Minh",
    ) -> List[ArchiveDay]:
        """Return observed daily weather between two dates."""
        ...

    def fetch_climate_days(
        self,
        latitude: float,
        longitude: float,
        *,
        start_date: dt.date,
        end_date: dt.date,
        model: str = "MPI_ESM1_2_XR",
        timezone: str = "Asia/Ho_Chi_Minh",
    ) -> List[ClimateDay]:
        """Return daily climate-model output between two dates."""
        ...

    def fetch_river_discharge(
        self,
        latitude: float,
        longitude: float,
        *,
        forecast_days: int = 10,
        timezone: str = "Asia/Ho_Chi_Minh",
    ) -> List[RiverDischargeDay]:
        """Return the daily river discharge forecast."""
        ...


@dataclass
class CallableEnvironmentalDataSource(EnvironmentalDataSource):
    """Wrap plain callables so backends (or test fakes) can be swapped in."""

    forecast: Callable[..., WeatherForecast]
    air_hours: Callable[..., List[AirHour]]
    pollen_hours: Callable[..., List[PollenHour]]
    archive_days: Callable[..., List[ArchiveDay]]
    climate_days: Callable[..., List[ClimateDay]]
    river_discharge: Callable[..., List[RiverDischargeDay]]

    def fetch_forecast(self, *args, **kwargs) -> WeatherForecast:
        return self.forecast(*args, **kwargs)

    def fetch_air_hours(self, *args, **kwargs) -> List[AirHour]:
        return self.air_hours(*args, **kwargs)

    def fetch_pollen_hours(self, *args, **kwargs) -> List[PollenHour]:
        return self.pollen_hours(*args, **kwargs)

    def fetch_archive_days(self, *args, **kwargs) -> List[ArchiveDay]:
        return self.archive_days(*args, **kwargs)

    def fetch_climate_days(self, *args, **kwargs) -> List[ClimateDay]:
        return self.climate_days(*args, **kwargs)

    def fetch_river_discharge(self, *args, **kwargs) -> List[RiverDischargeDay]:
        return self.river_discharge(*args, **kwargs)
