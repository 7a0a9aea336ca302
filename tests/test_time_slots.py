import datetime as dt
from zoneinfo import ZoneInfo

import pytest

from ecosense.domain import EnvironmentalHour, EnvironmentalSnapshot
from ecosense.models import EnvironmentalSensitivities, HealthProfile, UserProfile
from ecosense.recommendation_engine import DEFAULT_TIME_SLOT_HOURS, compute_time_slots

TZ = ZoneInfo("Asia/Ho_Chi_Minh")
START = dt.datetime(2024, 7, 1, 0, tzinfo=TZ)


def _snapshot(current_index: int, overrides=None, days: int = 2) -> EnvironmentalSnapshot:
    """Hourly readings from local midnight; `overrides` maps hour offset -> readings."""
    overrides = overrides or {}
    hours = []
    for i in range(24 * days):
        time = START + dt.timedelta(hours=i)
        values = dict(
            temperature=26.0,
            relative_humidity=75.0,
            precipitation_probability=10.0,
            uv_index=2.0,
            aqi=40.0,
            cloud_cover=30.0,
            is_day=6 <= time.hour < 19,
        )
        values.update(overrides.get(i, {}))
        hours.append(EnvironmentalHour(time=time, **values))
    return EnvironmentalSnapshot(
        observed_at=START + dt.timedelta(hours=current_index, minutes=10),
        timezone="Asia/Ho_Chi_Minh",
        hours=tuple(hours),
        current_index=current_index,
    )


def test_default_window_length():
    slots = compute_time_slots(_snapshot(8))
    assert len(slots) == DEFAULT_TIME_SLOT_HOURS
    assert [s.hour for s in slots] == list(range(8, 20))


def test_window_crossing_midnight_reads_next_day():
    slots = compute_time_slots(_snapshot(20, overrides={24: {"temperature": 21.0}}), hours=8)
    assert [s.hour for s in slots] == [20, 21, 22, 23, 0, 1, 2, 3]
    assert slots[4].time.date() == dt.date(2024, 7, 2)
    assert slots[4].label == "12 AM"
    assert slots[4].temperature == 21


def test_window_is_truncated_at_end_of_forecast():
    slots = compute_time_slots(_snapshot(44), hours=12)
    assert len(slots) == 4


def test_hot_sunny_midday_slot():
    slot = compute_time_slots(_snapshot(14, overrides={14: {"temperature": 33.0, "uv_index": 7.0}}), hours=1)[0]
    assert slot.label == "2 PM"
    assert slot.conditions == ["Hot", "Good air quality", "High UV"]
    assert slot.suitable is True
    assert slot.icon == "wb_sunny"
    assert (slot.temperature, slot.uv, slot.humidity) == (33, 7, 75)


def test_pleasant_night_slot():
    slot = compute_time_slots(_snapshot(22), hours=1)[0]
    assert slot.label == "10 PM"
    assert slot.conditions == ["Pleasant temperature", "Good air quality"]
    assert slot.icon == "nights_stay"


@pytest.mark.parametrize(
    "readings, icon",
    [
        ({"precipitation_probability": 60.0, "cloud_cover": 90.0}, "umbrella"),
        ({"cloud_cover": 90.0, "aqi": 200.0}, "cloud"),
        ({"aqi": 200.0}, "masks"),
    ],
)
def test_icon_priority(readings, icon):
    slot = compute_time_slots(_snapshot(10, overrides={10: readings}), hours=1)[0]
    assert slot.icon == icon


@pytest.mark.parametrize(
    "readings",
    [
        {"temperature": 36.0},
        {"precipitation_probability": 75.0},
        {"aqi": 151.0},
    ],
)
def test_unsuitable_for_everyone(readings):
    slot = compute_time_slots(_snapshot(10, overrides={10: readings}), hours=1)[0]
    assert slot.suitable is False


def test_profile_tightens_suitability():
    snapshot = _snapshot(
        12,
        overrides={
            12: {"aqi": 120.0},
            13: {"temperature": 31.0},
            14: {"uv_index": 7.0},
        },
    )
    plain = compute_time_slots(snapshot, None, hours=3)
    assert [s.suitable for s in plain] == [True, True, True]

    respiratory = UserProfile(health_profile=HealthProfile(has_respiratory_conditions=True))
    assert [s.suitable for s in compute_time_slots(snapshot, respiratory, hours=3)] == [False, True, True]

    sensitive = UserProfile(
        environmental_sensitivities=EnvironmentalSensitivities(heat_sensitivity=4, uv_sensitivity=5)
    )
    assert [s.suitable for s in compute_time_slots(snapshot, sensitive, hours=3)] == [True, False, False]


def test_condition_tags_for_wet_humid_polluted_hour():
    slot = compute_time_slots(
        _snapshot(7, overrides={7: {"temperature": 18.0, "precipitation_probability": 55.0,
                                    "relative_humidity": 90.0, "aqi": 80.0}}),
        hours=1,
    )[0]
    assert slot.conditions == ["Cool", "High precipitation chance", "High humidity", "Moderate air quality"]
