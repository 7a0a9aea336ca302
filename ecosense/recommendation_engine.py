"""Deterministic advisory rules.

Every public function here is a pure function of an EnvironmentalSnapshot and an
optional UserProfile. A missing profile (or a missing survey section) takes the
"no sensitivity declared" path. A missing snapshot is a caller error: the HTTP
layer surfaces fetch failures before any rule runs.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Sequence

from ecosense.domain import (
    ActivityRecommendation,
    ActivityRecommendations,
    AirQualityAdvice,
    Alert,
    AlertType,
    ClothingIcon,
    ClothingRecommendations,
    EnvironmentalHour,
    EnvironmentalSnapshot,
    HealthRecommendations,
    OptimalTimes,
    Severity,
    TemperatureAdvice,
    TimeSlot,
    UVAdvice,
)
from ecosense.models import UserProfile

# [start, end) local hours of today's activity windows
MORNING_HOURS = range(6, 10)
AFTERNOON_HOURS = range(12, 16)
EVENING_HOURS = range(17, 21)
HUMIDITY_HOURS = range(6, 21)

CLOTHING_LOOKAHEAD_HOURS = 12
DEFAULT_TIME_SLOT_HOURS = 12

WEATHER_CODES = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    56: "Light freezing drizzle",
    57: "Dense freezing drizzle",
    61: "Slight rain",
    63: "Moderate rain",
    65: "Heavy rain",
    66: "Light freezing rain",
    67: "Heavy freezing rain",
    71: "Slight snow fall",
    73: "Moderate snow fall",
    75: "Heavy snow fall",
    77: "Snow grains",
    80: "Slight rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Slight snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with slight hail",
    99: "Thunderstorm with heavy hail",
}

# activity type -> interests that earn the suitability bonus
INTEREST_BONUS = {
    "walking": ("walking_parks",),
    "cycling": ("cycling",),
    "parks": ("walking_parks", "photography"),
}


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

def weather_description(code: int | None) -> str:
    """Human label for a WMO weather code."""
    if code is None:
        return "Unknown"
    return WEATHER_CODES.get(int(code), "Unknown")


def aqi_category(aqi: float | None) -> str:
    if aqi is None:
        return "Unknown"
    if aqi <= 50:
        return "Good"
    if aqi <= 100:
        return "Moderate"
    if aqi <= 150:
        return "Unhealthy for Sensitive Groups"
    if aqi <= 200:
        return "Unhealthy"
    if aqi <= 300:
        return "Very Unhealthy"
    return "Hazardous"


def uv_category(uv: float | None) -> str:
    if uv is None:
        return "Unknown"
    if uv <= 2:
        return "Low"
    if uv <= 5:
        return "Moderate"
    if uv <= 7:
        return "High"
    if uv <= 10:
        return "Very High"
    return "Extreme"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_snapshot(snapshot: EnvironmentalSnapshot | None) -> EnvironmentalSnapshot:
    if snapshot is None:
        raise ValueError("An environmental snapshot is required to evaluate advisories")
    return snapshot


def _require_readings(hour: EnvironmentalHour, *names: str) -> EnvironmentalHour:
    missing = [name for name in names if getattr(hour, name) is None]
    if missing:
        raise ValueError(f"Readings required for this advice are missing: {', '.join(missing)}")
    return hour


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _fmt(value: float) -> str:
    """Compact number for titles: 6.0 -> '6', 6.5 -> '6.5'."""
    return f"{value:g}"


def _gt(value: float | None, threshold: float) -> bool:
    return value is not None and value > threshold


def _lt(value: float | None, threshold: float) -> bool:
    return value is not None and value < threshold


def _mean(values: Iterable[float | None]) -> float | None:
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def _max(values: Iterable[float | None]) -> float | None:
    present = [v for v in values if v is not None]
    return max(present) if present else None


def _has_respiratory_conditions(profile: UserProfile | None) -> bool:
    return bool(profile and profile.health_profile and profile.health_profile.has_respiratory_conditions)


def _sensitivity(profile: UserProfile | None, name: str) -> int | None:
    """Declared sensitivity, or None when the user never filled in that survey section."""
    if profile is None or profile.environmental_sensitivities is None:
        return None
    return getattr(profile.environmental_sensitivities, name)


def _at_least(value: int | None, threshold: int) -> bool:
    return value is not None and value >= threshold


def _outdoor_interests(profile: UserProfile | None) -> List[str]:
    if profile is None or profile.interests is None:
        return []
    return list(profile.interests.outdoor_activities)


def _interested(interests: Sequence[str], key: str | None) -> bool:
    """Interest gate; an empty interest list accepts everything."""
    return key is None or not interests or key in interests


# ---------------------------------------------------------------------------
# Alerts
# ---------------------------------------------------------------------------

def _judge_air_quality(aqi: float, respiratory: bool) -> Alert | None:
    if not (aqi > 100 or (respiratory and aqi > 50)):
        return None
    severity = Severity.DANGER if aqi > 150 else Severity.WARNING if aqi > 100 else Severity.INFO
    return Alert(
        type=AlertType.AIR_QUALITY,
        severity=severity,
        title=f"Air quality is {aqi_category(aqi)}",
        description=(
            "Based on your respiratory condition, consider limiting outdoor activities."
            if respiratory
            else "Consider reducing prolonged outdoor exposure today."
        ),
        icon="masks",
    )


def _judge_uv(uv: float, uv_sensitivity: int | None) -> Alert | None:
    sensitive = _at_least(uv_sensitivity, 4)
    if not (uv > 5 or (sensitive and uv > 3)):
        return None
    severity = Severity.DANGER if uv > 8 else Severity.WARNING if uv > 5 else Severity.INFO
    return Alert(
        type=AlertType.UV,
        severity=severity,
        title=f"High UV index ({_fmt(uv)})",
        description=(
            "With your skin sensitivity, use SPF 50+ if outdoors between 10am-4pm."
            if sensitive
            else "Use sunscreen and seek shade during peak hours."
        ),
        icon="wb_sunny",
    )


def _judge_temperature(temp: float, heat_sensitivity: int | None) -> Alert | None:
    sensitive = _at_least(heat_sensitivity, 4)
    if not (temp > 32 or (sensitive and temp > 30)):
        return None
    severity = Severity.DANGER if temp > 35 else Severity.WARNING if temp > 32 else Severity.INFO
    return Alert(
        type=AlertType.TEMPERATURE,
        severity=severity,
        title=f"High temperature ({_round_half_up(temp)}°C)",
        description=(
            "Given your heat sensitivity, stay hydrated and limit outdoor activities."
            if sensitive
            else "Stay hydrated and take breaks from the heat."
        ),
        icon="thermostat",
    )


def _judge_precipitation(precip_prob: float) -> Alert | None:
    if not precip_prob > 70:
        return None
    return Alert(
        type=AlertType.PRECIPITATION,
        severity=Severity.WARNING if precip_prob > 90 else Severity.INFO,
        title=f"High chance of precipitation ({_fmt(precip_prob)}%)",
        description="Bring an umbrella or raincoat when going out today.",
        icon="umbrella",
    )


def compute_alerts(snapshot: EnvironmentalSnapshot | None, profile: UserProfile | None = None) -> List[Alert]:
    """Alerts for the current hour, ordered air quality, UV, temperature, precipitation.

    Each dimension is judged independently against its population threshold,
    lowered when the profile declares the matching sensitivity.
    """
    now = _require_snapshot(snapshot).current
    candidates = (
        _judge_air_quality(now.aqi, _has_respiratory_conditions(profile)) if now.aqi is not None else None,
        _judge_uv(now.uv_index, _sensitivity(profile, "uv_sensitivity")) if now.uv_index is not None else None,
        _judge_temperature(now.temperature, _sensitivity(profile, "heat_sensitivity"))
        if now.temperature is not None
        else None,
        _judge_precipitation(now.precipitation_probability) if now.precipitation_probability is not None else None,
    )
    return [alert for alert in candidates if alert is not None]


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------

def _window_hours(today: List[EnvironmentalHour], hours: range) -> List[EnvironmentalHour]:
    return [h for h in today if h.time.hour in hours]


def _window_is_optimal(temp: float | None, aqi: float | None, *, temp_limit: float, respiratory: bool) -> bool:
    if temp is None or aqi is None:
        return False
    aqi_limit = 50 if respiratory else 100
    return temp < temp_limit and aqi < aqi_limit


def compute_activity_recommendations(
    snapshot: EnvironmentalSnapshot | None,
    profile: UserProfile | None = None,
) -> ActivityRecommendations:
    """Suggest activities for today's comfortable windows, or an indoor fallback when none qualify."""
    snapshot = _require_snapshot(snapshot)
    respiratory = _has_respiratory_conditions(profile)
    interests = _outdoor_interests(profile)

    today = snapshot.hours_on(snapshot.observed_at.date())
    morning = _window_hours(today, MORNING_HOURS)
    afternoon = _window_hours(today, AFTERNOON_HOURS)
    evening = _window_hours(today, EVENING_HOURS)

    morning_temp, morning_aqi = _mean(h.temperature for h in morning), _mean(h.aqi for h in morning)
    afternoon_temp, afternoon_aqi = _mean(h.temperature for h in afternoon), _mean(h.aqi for h in afternoon)
    evening_temp, evening_aqi = _mean(h.temperature for h in evening), _mean(h.aqi for h in evening)

    optimal = OptimalTimes(
        morning=_window_is_optimal(morning_temp, morning_aqi, temp_limit=30, respiratory=respiratory),
        afternoon=_window_is_optimal(afternoon_temp, afternoon_aqi, temp_limit=32, respiratory=respiratory),
        evening=_window_is_optimal(evening_temp, evening_aqi, temp_limit=30, respiratory=respiratory),
    )

    conditions: List[str] = []
    if _lt(morning_temp, 30) or _lt(evening_temp, 30):
        conditions.append("Comfortable temperature")
    if _lt(morning_aqi, 50) or _lt(evening_aqi, 50):
        conditions.append("Better air quality")
    if any(_lt(h.relative_humidity, 70) for h in _window_hours(today, HUMIDITY_HOURS)):
        conditions.append("Lower humidity")

    recommendations: List[ActivityRecommendation] = []
    morning_or_evening = optimal.morning or optimal.evening

    if _interested(interests, "walking_parks") and morning_or_evening:
        recommendations.append(
            ActivityRecommendation(
                title="Morning walk in Hoan Kiem Lake",
                description=(
                    "Ideal before 9 AM when air quality is best for walking."
                    if optimal.morning
                    else "Consider an evening walk after 5 PM when conditions improve."
                ),
                icon="park",
            )
        )

    if not (optimal.morning or optimal.afternoon or optimal.evening):
        recommendations.append(
            ActivityRecommendation(
                title="Visit the Vietnam National Museum",
                description="Indoor activity recommended during high pollution or heat.",
                icon="museum",
            )
        )

    if optimal.evening:
        recommendations.append(
            ActivityRecommendation(
                title="Outdoor dining in West Lake area",
                description="Pleasant evening temperatures after 6 PM.",
                icon="restaurant",
            )
        )

    if _interested(interests, "cycling") and morning_or_evening:
        recommendations.append(
            ActivityRecommendation(
                title="Cycling around West Lake",
                description=(
                    "Great conditions in the morning for cycling."
                    if optimal.morning
                    else "Evening temperatures are suitable for cycling."
                ),
                icon="directions_bike",
            )
        )

    if _interested(interests, "photography") and morning_or_evening:
        recommendations.append(
            ActivityRecommendation(
                title="Photography at Long Bien Bridge",
                description=(
                    "Capture beautiful sunset views in the evening."
                    if optimal.evening
                    else "Morning light is ideal for photography."
                ),
                icon="photo_camera",
            )
        )

    return ActivityRecommendations(recommendations=recommendations, optimal_times=optimal, conditions=conditions)


# ---------------------------------------------------------------------------
# Clothing
# ---------------------------------------------------------------------------

def compute_clothing_recommendations(
    snapshot: EnvironmentalSnapshot | None,
    profile: UserProfile | None = None,
) -> ClothingRecommendations:
    """Additive clothing advice; no item suppresses another.

    Raises ValueError when no temperature is known for the next 12 hours.
    """
    snapshot = _require_snapshot(snapshot)
    now = snapshot.current
    ahead = snapshot.upcoming(CLOTHING_LOOKAHEAD_HOURS)
    peak_temp = _max(h.temperature for h in ahead)
    if peak_temp is None:
        peak_temp = _require_readings(now, "temperature").temperature
    max_precip = _max(h.precipitation_probability for h in ahead) or 0
    uv_sensitivity = _sensitivity(profile, "uv_sensitivity")

    icons: List[ClothingIcon] = []
    specifics: List[str] = []

    if peak_temp >= 30:
        icons.append(ClothingIcon(icon="checkroom", label="Light, breathable clothing"))
        specifics.append("Light cotton t-shirt and shorts/skirt for the day")
    elif peak_temp >= 25:
        icons.append(ClothingIcon(icon="checkroom", label="Light to medium clothing"))
        specifics.append("Light cotton clothing, consider a light long-sleeve for evening")
    else:
        icons.append(ClothingIcon(icon="checkroom", label="Medium weight clothing"))
        specifics.append("Long pants and light long-sleeve shirt")

    if _gt(now.uv_index, 3) or _at_least(uv_sensitivity, 3):
        high_spf = _at_least(uv_sensitivity, 4)
        icons.append(ClothingIcon(icon="face", label="SPF 50+ sunscreen" if high_spf else "SPF 30+ sunscreen"))
        if high_spf:
            specifics.append("Apply high SPF sunscreen every 2 hours when outdoors")
            specifics.append("Consider a wide-brimmed hat and UV-protective sunglasses")
        else:
            specifics.append("Use sunscreen during peak daylight hours")

    if max_precip > 30:
        icons.append(ClothingIcon(icon="umbrella", label=f"Bring umbrella ({_fmt(max_precip)}% chance of rain)"))
        specifics.append("Carry a compact umbrella or light raincoat")

    if _has_respiratory_conditions(profile) or _gt(now.aqi, 100):
        icons.append(ClothingIcon(icon="masks", label="Face mask recommended"))
        specifics.append("Face mask recommended during commute times (for air quality protection)")

    style = profile.interests.clothing_style if profile and profile.interests else None
    if style == "fashionable":
        specifics.append("Light, fashionable layers work well with today's conditions")
    elif style == "business_casual":
        specifics.append("Lightweight business casual attire appropriate for today's weather")

    if peak_temp >= 30:
        specifics.append("Bring a light jacket for air-conditioned indoor spaces")

    return ClothingRecommendations(icons=icons, specifics=specifics)


# ---------------------------------------------------------------------------
# Suitability
# ---------------------------------------------------------------------------

def compute_suitability_score(
    snapshot: EnvironmentalSnapshot | None,
    activity_type: str,
    profile: UserProfile | None = None,
) -> float:
    """Relative 0-1 ranking of how suitable the current hour is for an outdoor activity."""
    now = _require_snapshot(snapshot).current
    temp, aqi, precip = now.temperature, now.aqi, now.precipitation_probability
    score = 1.0

    if _gt(temp, 35):
        score -= 0.5
    elif _gt(temp, 32):
        score -= 0.3
    elif _lt(temp, 15):
        score -= 0.2

    if _gt(aqi, 150):
        score -= 0.6
    elif _gt(aqi, 100):
        score -= 0.3
    elif _gt(aqi, 50):
        score -= 0.1

    if _gt(precip, 70):
        score -= 0.5
    elif _gt(precip, 50):
        score -= 0.3
    elif _gt(precip, 30):
        score -= 0.1

    if _has_respiratory_conditions(profile) and _gt(aqi, 100):
        score -= 0.4

    interests = _outdoor_interests(profile)
    if any(i in interests for i in INTEREST_BONUS.get(activity_type, ())):
        score += 0.1

    return max(0.0, min(1.0, round(score, 4)))


def activity_alert(snapshot: EnvironmentalSnapshot | None, profile: UserProfile | None = None) -> str | None:
    """Single caution line shown on outdoor activity cards, most pressing first."""
    now = _require_snapshot(snapshot).current
    if _gt(now.precipitation_probability, 70):
        return "High chance of precipitation - check forecast before planning this activity"
    if _gt(now.aqi, 150):
        return "Air quality is unhealthy today - consider indoor alternatives"
    if _gt(now.aqi, 100) and _has_respiratory_conditions(profile):
        return "Current air quality may affect your respiratory condition"
    if _gt(now.temperature, 35):
        return "Extreme heat today - avoid strenuous outdoor activities or plan for early morning"
    return None


# ---------------------------------------------------------------------------
# Health advice
# ---------------------------------------------------------------------------

def _temperature_advice(temp: float) -> List[str]:
    if temp > 32:
        return [
            "Stay hydrated by drinking plenty of water",
            "Seek shade and avoid direct sun during peak hours",
            "Wear lightweight, loose-fitting clothing",
            "Use cooling towels or misting fans if available",
            "Take regular breaks from heat if working outdoors",
        ]
    if temp > 28:
        return [
            "Stay hydrated throughout the day",
            "Wear light, breathable clothing",
            "Use sunscreen when outdoors",
            "Limit intense physical activity during peak hours",
        ]
    if temp < 18:
        return [
            "Wear layers to stay warm",
            "Keep extremities covered (head, hands)",
            "Stay dry to avoid losing body heat",
            "Drink warm beverages to maintain body temperature",
        ]
    return [
        "Comfortable temperature range",
        "Great conditions for most outdoor activities",
        "Regular hydration still recommended",
        "Carry a light jacket for evening temperature drops",
    ]


def _uv_advice(uv: float) -> List[str]:
    if uv <= 2:
        return [
            "Low UV risk - minimal protection needed",
            "Wear sunglasses in bright conditions",
        ]
    if uv <= 5:
        return [
            "Use SPF 30+ sunscreen",
            "Wear a hat when in direct sunlight",
            "Take breaks in the shade during peak hours",
            "Use sunglasses with UV protection",
        ]
    if uv <= 7:
        return [
            "Apply SPF 30+ sunscreen every 2 hours",
            "Wear protective clothing and a wide-brimmed hat",
            "Reduce sun exposure between 10am and 4pm",
            "Use sunglasses with high UV protection",
        ]
    return [
        "Apply SPF 50+ sunscreen every 2 hours",
        "Wear sun-protective clothing (UPF-rated if possible)",
        "Avoid sun exposure between 10am and 4pm",
        "Seek shade whenever possible",
        "Use wrap-around sunglasses with UV 400 protection",
    ]


def _air_quality_advice(aqi: float) -> List[str]:
    if aqi <= 50:
        return [
            "Air quality is good - enjoy outdoor activities",
            "No special precautions needed",
        ]
    if aqi <= 100:
        return [
            "Sensitive individuals should limit prolonged outdoor exertion",
            "Consider wearing a mask if you have respiratory conditions",
            "Keep windows closed during high traffic times",
        ]
    if aqi <= 150:
        return [
            "People with respiratory or heart conditions should limit outdoor activities",
            "Everyone should reduce prolonged or intense outdoor activities",
            "Wear a proper mask (N95 or equivalent) when outdoors",
            "Use air purifiers indoors if available",
        ]
    return [
        "Everyone should avoid outdoor activities",
        "Wear N95 masks when outdoors is necessary",
        "Keep windows closed and use air purifiers",
        "Follow local health authority guidance",
        "Consider rescheduling outdoor events",
    ]


def compute_health_recommendations(snapshot: EnvironmentalSnapshot | None) -> HealthRecommendations:
    """General (not personalized) health advice for the current temperature, UV and AQI bands.

    Raises ValueError when the current hour lacks any of those readings.
    """
    now = _require_readings(_require_snapshot(snapshot).current, "temperature", "uv_index", "aqi")
    return HealthRecommendations(
        temperature=TemperatureAdvice(
            current=_round_half_up(now.temperature),
            is_hot=now.temperature > 30,
            is_cold=now.temperature < 18,
            recommendations=_temperature_advice(now.temperature),
        ),
        uv=UVAdvice(index=now.uv_index, category=uv_category(now.uv_index), recommendations=_uv_advice(now.uv_index)),
        air_quality=AirQualityAdvice(
            aqi=now.aqi,
            category=aqi_category(now.aqi),
            recommendations=_air_quality_advice(now.aqi),
        ),
    )


# ---------------------------------------------------------------------------
# Time slots
# ---------------------------------------------------------------------------

def _hour_label(hour: int) -> str:
    if hour == 0:
        return "12 AM"
    if hour == 12:
        return "12 PM"
    if hour > 12:
        return f"{hour - 12} PM"
    return f"{hour} AM"


def _slot_conditions(h: EnvironmentalHour, uv: float) -> List[str]:
    tags: List[str] = []
    if h.temperature is not None:
        if h.temperature > 32:
            tags.append("Hot")
        elif h.temperature < 20:
            tags.append("Cool")
        else:
            tags.append("Pleasant temperature")
    if _gt(h.precipitation_probability, 50):
        tags.append("High precipitation chance")
    if _gt(h.relative_humidity, 80):
        tags.append("High humidity")
    if h.aqi is not None:
        if h.aqi < 50:
            tags.append("Good air quality")
        elif h.aqi < 100:
            tags.append("Moderate air quality")
        else:
            tags.append("Poor air quality")
    if 10 <= h.time.hour <= 16 and uv > 5:
        tags.append("High UV")
    return tags


def _slot_suitable(h: EnvironmentalHour, uv: float, profile: UserProfile | None) -> bool:
    if _gt(h.temperature, 35) or _gt(h.precipitation_probability, 70) or _gt(h.aqi, 150):
        return False
    if _has_respiratory_conditions(profile) and _gt(h.aqi, 100):
        return False
    if _at_least(_sensitivity(profile, "heat_sensitivity"), 4) and _gt(h.temperature, 30):
        return False
    if _at_least(_sensitivity(profile, "uv_sensitivity"), 4) and uv > 6 and 10 <= h.time.hour <= 16:
        return False
    return True


def _slot_icon(h: EnvironmentalHour) -> str:
    if _gt(h.precipitation_probability, 50):
        return "umbrella"
    if _gt(h.cloud_cover, 70):
        return "cloud"
    if _gt(h.aqi, 150):
        return "masks"
    if not h.is_day:
        return "nights_stay"
    return "wb_sunny"


def compute_time_slots(
    snapshot: EnvironmentalSnapshot | None,
    profile: UserProfile | None = None,
    hours: int = DEFAULT_TIME_SLOT_HOURS,
) -> List[TimeSlot]:
    """Hour-by-hour outdoor suitability starting at the current hour.

    Hours are read forward from the snapshot's current index, so a window that
    crosses midnight uses tomorrow's readings.
    """
    snapshot = _require_snapshot(snapshot)
    slots: List[TimeSlot] = []
    for h in snapshot.upcoming(hours):
        uv = h.uv_index or 0
        slots.append(
            TimeSlot(
                hour=h.time.hour,
                time=h.time,
                label=_hour_label(h.time.hour),
                conditions=_slot_conditions(h, uv),
                suitable=_slot_suitable(h, uv, profile),
                icon=_slot_icon(h),
                temperature=_round_half_up(h.temperature) if h.temperature is not None else None,
                precipitation=h.precipitation_probability,
                humidity=_round_half_up(h.relative_humidity) if h.relative_humidity is not None else None,
                uv=_round_half_up(uv),
                aqi=h.aqi,
            )
        )
    return slots
