"""Factory helpers for choosing an environmental data source at startup."""

from __future__ import annotations

from ecosense import config
from ecosense.data_sources.base import CallableEnvironmentalDataSource, EnvironmentalDataSource
from ecosense.data_sources.open_meteo_client import (
    fetch_air_hours,
    fetch_archive_days,
    fetch_climate_days,
    fetch_forecast,
    fetch_pollen_hours,
    fetch_river_discharge,
)
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="data_sources/factory")


DEFAULT_SOURCE_NAME = "open_meteo"


def build_data_source(settings: config.Settings | None = None) -> EnvironmentalDataSource:
    """Instantiate the configured environmental data source."""
    settings = settings or config.settings
    source = (settings.data_source or DEFAULT_SOURCE_NAME).lower()

    if source == "open_meteo":
        logger.info("Using Open-Meteo data source")
        return CallableEnvironmentalDataSource(
            forecast=fetch_forecast,
            air_hours=fetch_air_hours,
            pollen_hours=fetch_pollen_hours,
            archive_days=fetch_archive_days,
            climate_days=fetch_climate_days,
            river_discharge=fetch_river_discharge,
        )

    raise ValueError(f"Unknown data source '{source}'")
