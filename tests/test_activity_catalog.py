import datetime as dt
import unittest
from zoneinfo import ZoneInfo

from ecosense.activity_catalog import INDOOR_ACTIVITIES, OUTDOOR_ACTIVITIES, indoor_activities, outdoor_activities
from ecosense.domain import EnvironmentalHour, EnvironmentalSnapshot
from ecosense.models import HealthProfile, Interests, UserProfile

TZ = ZoneInfo("Asia/Ho_Chi_Minh")


def _snapshot(**current) -> EnvironmentalSnapshot:
    values = dict(temperature=27.0, precipitation_probability=10.0, aqi=40.0, uv_index=3.0, is_day=True)
    values.update(current)
    now = dt.datetime(2024, 7, 1, 10, tzinfo=TZ)
    return EnvironmentalSnapshot(
        observed_at=now,
        timezone="Asia/Ho_Chi_Minh",
        hours=(EnvironmentalHour(time=now, **values),),
    )


class TestOutdoorActivities(unittest.TestCase):
    def test_good_conditions_score_full_marks(self):
        entries = outdoor_activities(_snapshot())
        self.assertEqual([e.id for e in entries], ["walking", "cycling", "parks"])
        for entry in entries:
            self.assertFalse(entry.indoor)
            self.assertEqual(entry.suitability_score, 1.0)
            self.assertIsNone(entry.current_alert)
            self.assertTrue(entry.locations)

    def test_poor_air_lowers_score_and_sets_alert(self):
        profile = UserProfile(
            health_profile=HealthProfile(has_respiratory_conditions=True),
            interests=Interests(outdoor_activities=["cycling"]),
        )
        entries = {e.id: e for e in outdoor_activities(_snapshot(aqi=120), profile)}
        # 1.0 - 0.3 (aqi) - 0.4 (respiratory), cyclists get +0.1
        self.assertEqual(entries["walking"].suitability_score, 0.3)
        self.assertEqual(entries["cycling"].suitability_score, 0.4)
        self.assertEqual(entries["walking"].current_alert, "Current air quality may affect your respiratory condition")

    def test_catalog_coordinates_are_in_hanoi(self):
        for entry in outdoor_activities(_snapshot()) + indoor_activities():
            for location in entry.locations:
                self.assertAlmostEqual(location.coordinates.lat, 21.0, delta=0.2)
                self.assertAlmostEqual(location.coordinates.lng, 105.8, delta=0.2)


class TestIndoorActivities(unittest.TestCase):
    def test_no_profile_has_no_notes(self):
        entries = indoor_activities(None)
        self.assertEqual(len(entries), len(INDOOR_ACTIVITIES))
        self.assertTrue(all(e.indoor for e in entries))
        self.assertTrue(all(e.personalized_note is None for e in entries))
        self.assertTrue(all(e.suitability_score is None for e in entries))

    def test_sustainability_interest_unlocks_notes(self):
        moderate = UserProfile(interests=Interests(sustainability_interest=3))
        notes = {e.id: e.personalized_note for e in indoor_activities(moderate)}
        self.assertIsNone(notes["museums"])
        self.assertIn("biodegradable straws", notes["cafes"])
        self.assertIsNone(notes["workshops"])

        keen = UserProfile(interests=Interests(sustainability_interest=5))
        self.assertTrue(all(e.personalized_note for e in indoor_activities(keen)))


def test_outdoor_catalog_ids_match_suitability_activity_types():
    assert {entry["id"] for entry in OUTDOOR_ACTIVITIES} == {"walking", "cycling", "parks"}


if __name__ == "__main__":
    unittest.main()
