"""Domain vocabulary and strict schemas for environmental advisories.

This module defines the contract between the environment service, the rule
evaluator and the HTTP layer: the immutable environmental snapshot, the alert
enums, and Pydantic models for every advisory payload. No rule logic lives
here.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _StrictBaseModel(BaseModel):
    """Base model with strict extra handling."""

    model_config = ConfigDict(extra="forbid")


class _FrozenModel(BaseModel):
    """Strict model that cannot be mutated after construction."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class AlertType(str, Enum):
    """Environmental dimension an alert is about."""
    AIR_QUALITY = "air_quality"
    UV = "uv"
    TEMPERATURE = "temperature"
    PRECIPITATION = "precipitation"
    WIND = "wind"


class Severity(str, Enum):
    """Three-tier alert severity."""
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


class FloodRisk(str, Enum):
    """River-discharge based flood risk level."""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    SEVERE = "severe"


class EnvironmentalHour(_FrozenModel):
    """Weather and air-quality readings for one local hour."""
    time: datetime
    temperature: float | None = None
    apparent_temperature: float | None = None
    relative_humidity: float | None = None
    precipitation_probability: float | None = None
    precipitation: float | None = None
    weather_code: int | None = None
    surface_pressure: float | None = None
    cloud_cover: float | None = None
    visibility: float | None = None
    is_day: bool | None = None
    wind_speed: float | None = None
    wind_direction: float | None = None
    wind_gusts: float | None = None
    uv_index: float | None = None
    aqi: float | None = None
    pm2_5: float | None = None
    pm10: float | None = None
    nitrogen_dioxide: float | None = None
    ozone: float | None = None
    sulphur_dioxide: float | None = None
    carbon_monoxide: float | None = None


class EnvironmentalDay(_FrozenModel):
    """Daily forecast summary."""
    date: date
    weather_code: int | None = None
    temperature_max: float | None = None
    temperature_min: float | None = None
    sunrise: datetime | None = None
    sunset: datetime | None = None
    precipitation_probability_max: float | None = None


class EnvironmentalSnapshot(_FrozenModel):
    """Point-in-time environmental reading plus the attached forecast series.

    `hours` starts at local midnight of the observation day; `current_index`
    points at the hour that is "now".
    """
    observed_at: datetime
    timezone: str
    hours: Tuple[EnvironmentalHour, ...]
    days: Tuple[EnvironmentalDay, ...] = ()
    current_index: int = 0

    @model_validator(mode="after")
    def _check_current_index(self) -> "EnvironmentalSnapshot":
        if not self.hours:
            raise ValueError("snapshot needs at least one hour")
        if not 0 <= self.current_index < len(self.hours):
            raise ValueError(f"current_index {self.current_index} outside 0..{len(self.hours) - 1}")
        return self

    @property
    def current(self) -> EnvironmentalHour:
        """Reading for the current hour."""
        return self.hours[self.current_index]

    def upcoming(self, count: int) -> Tuple[EnvironmentalHour, ...]:
        """Current hour plus the following hours, at most `count` entries."""
        return self.hours[self.current_index:self.current_index + count]

    def hours_on(self, day: date) -> List[EnvironmentalHour]:
        """All hours falling on the given local date."""
        return [h for h in self.hours if h.time.date() == day]


class Alert(_StrictBaseModel):
    """User-facing environmental alert; derived, never stored."""
    type: AlertType
    severity: Severity
    title: str
    description: str
    icon: str


class ActivityRecommendation(_StrictBaseModel):
    """One suggested activity."""
    type: str = "activity"
    title: str
    description: str
    icon: str


class OptimalTimes(_StrictBaseModel):
    """Whether each of today's activity windows is comfortable."""
    morning: bool
    afternoon: bool
    evening: bool


class ActivityRecommendations(_StrictBaseModel):
    """Activity suggestions with the windows and general conditions behind them."""
    recommendations: List[ActivityRecommendation] = Field(default_factory=list)
    optimal_times: OptimalTimes
    conditions: List[str] = Field(default_factory=list)


class ClothingIcon(_StrictBaseModel):
    icon: str
    label: str


class ClothingRecommendations(_StrictBaseModel):
    """Garment icons plus free-text clothing advice."""
    icons: List[ClothingIcon] = Field(default_factory=list)
    specifics: List[str] = Field(default_factory=list)


class TemperatureAdvice(_StrictBaseModel):
    current: int
    is_hot: bool
    is_cold: bool
    recommendations: List[str]


class UVAdvice(_StrictBaseModel):
    index: float
    category: str
    recommendations: List[str]


class AirQualityAdvice(_StrictBaseModel):
    aqi: float
    category: str
    recommendations: List[str]


class HealthRecommendations(_StrictBaseModel):
    """General health advice keyed by the current reading bands."""
    temperature: TemperatureAdvice
    uv: UVAdvice
    air_quality: AirQualityAdvice


class TimeSlot(_StrictBaseModel):
    """Per-hour outdoor suitability for the activity planner."""
    hour: int
    time: datetime
    label: str
    conditions: List[str] = Field(default_factory=list)
    suitable: bool
    icon: str
    temperature: int | None = None
    precipitation: float | None = None
    humidity: int | None = None
    uv: int | None = None
    aqi: float | None = None


class Coordinates(_StrictBaseModel):
    lat: float
    lng: float


class ActivityLocation(_StrictBaseModel):
    name: str
    address: str
    description: str
    coordinates: Coordinates
    best_times: List[str] = Field(default_factory=list)


class ActivityCatalogEntry(_StrictBaseModel):
    """Outdoor or indoor activity with Hanoi locations."""
    id: str
    name: str
    description: str
    locations: List[ActivityLocation] = Field(default_factory=list)
    best_weather: List[str] = Field(default_factory=list)
    worst_weather: List[str] = Field(default_factory=list)
    indoor: bool
    suitability_score: float | None = Field(default=None, ge=0.0, le=1.0)
    current_alert: str | None = None
    personalized_note: str | None = None


class YearlySeries(_StrictBaseModel):
    years: List[int] = Field(default_factory=list)
    values: List[float] = Field(default_factory=list)


class ExtremeEvents(_StrictBaseModel):
    years: List[int] = Field(default_factory=list)
    heatwaves: List[int] = Field(default_factory=list)
    floods: List[int] = Field(default_factory=list)
    droughts: List[int] = Field(default_factory=list)


class ClimateSummary(_StrictBaseModel):
    """Yearly aggregates of climate-model output."""
    model: str
    temperature: YearlySeries
    precipitation: YearlySeries
    extreme_events: ExtremeEvents


class FloodForecastDay(_StrictBaseModel):
    date: date
    discharge: float | None = None
    risk: FloodRisk


class FloodRiskReport(_StrictBaseModel):
    risk: FloodRisk
    discharge: float | None = None
    forecast: List[FloodForecastDay] = Field(default_factory=list)


class ClimateProjections(_StrictBaseModel):
    """Temperature projections by scenario; `source` says where the numbers come from."""
    source: str
    years: List[int] = Field(default_factory=list)
    temperature: Dict[str, List[float]] = Field(default_factory=dict)
