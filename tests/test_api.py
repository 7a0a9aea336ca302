import datetime as dt
import unittest
from zoneinfo import ZoneInfo

from fastapi.testclient import TestClient

from ecosense import store_manager
from ecosense.api import get_data_source
from ecosense.config import settings
from ecosense.data_sources import (
    AirHour,
    ArchiveDay,
    CallableEnvironmentalDataSource,
    PollenHour,
    RiverDischargeDay,
    WeatherDay,
    WeatherForecast,
    WeatherHour,
)
from ecosense.errors import UpstreamFetchError
from ecosense.llm_client import get_llm_client
from ecosense.main import app as fastapi_app
from ecosense.store_manager import get_stores


def _midnight() -> dt.datetime:
    now = dt.datetime.now(ZoneInfo(settings.timezone))
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def _make_forecast(hours: int = 48, temperature: float = 33.0) -> WeatherForecast:
    start = _midnight()
    return WeatherForecast(
        hours=[
            WeatherHour(
                time=start + dt.timedelta(hours=i),
                temperature=temperature,
                apparent_temperature=temperature + 3,
                relative_humidity=70.0,
                dew_point=24.0,
                precipitation_probability=20.0,
                precipitation=0.0,
                weather_code=1,
                surface_pressure=1005.0,
                cloud_cover=25.0,
                visibility=15000.0,
                is_day=1 if 6 <= (start + dt.timedelta(hours=i)).hour < 19 else 0,
                wind_speed=6.0,
                wind_direction=110.0,
                wind_gusts=12.0,
                uv_index=2.0,
            )
            for i in range(hours)
        ],
        days=[
            WeatherDay(
                date=start.date(),
                weather_code=1,
                temperature_max=35.0,
                temperature_min=27.0,
                sunrise=start.replace(hour=5, minute=20),
                sunset=start.replace(hour=18, minute=40),
                precipitation_probability_max=30.0,
            )
        ],
    )


def _make_air(hours: int = 48, aqi: float = 120.0) -> list:
    start = _midnight()
    return [
        AirHour(
            time=start + dt.timedelta(hours=i),
            pm10=60.0,
            pm2_5=45.0,
            nitrogen_dioxide=30.0,
            sulphur_dioxide=6.0,
            ozone=70.0,
            carbon_monoxide=400.0,
            european_aqi=aqi,
            uv_index=6.0,
        )
        for i in range(hours)
    ]


class FakeLLM:
    def __init__(self):
        self.calls = []

    def complete(self, system_prompt, messages):
        self.calls.append((system_prompt, list(messages)))
        return "Wear a mask if you go out this afternoon."


class TestApi(unittest.TestCase):
    def setUp(self):
        self.archive_calls = []
        self.stores = store_manager.use_in_memory_stores_for_tests(seed=True)
        self.llm = FakeLLM()
        self.data_source = self._data_source()
        fastapi_app.dependency_overrides[get_data_source] = lambda: self.data_source
        fastapi_app.dependency_overrides[get_stores] = lambda: self.stores
        fastapi_app.dependency_overrides[get_llm_client] = lambda: self.llm
        self._orig_api_key = settings.api_key
        self._orig_max_len = settings.max_user_message_chars
        self.client = TestClient(fastapi_app)

    def tearDown(self):
        fastapi_app.dependency_overrides.clear()
        settings.api_key = self._orig_api_key
        settings.max_user_message_chars = self._orig_max_len

    def _data_source(self, forecast_error=None):
        def fetch_forecast(lat, lon, **kwargs):
            if forecast_error:
                raise forecast_error
            return _make_forecast()

        def fetch_archive(lat, lon, **kwargs):
            self.archive_calls.append(kwargs)
            return [ArchiveDay(kwargs["start_date"], 31.0, 25.0, 28.0, 2.0, 2.0, 61)]

        today = dt.date.today()
        return CallableEnvironmentalDataSource(
            forecast=fetch_forecast,
            air_hours=lambda lat, lon, **kwargs: _make_air(),
            pollen_hours=lambda lat, lon, **kwargs: [PollenHour(_midnight(), None, None, 1.2, None, None, None)],
            archive_days=fetch_archive,
            climate_days=lambda lat, lon, **kwargs: [],
            river_discharge=lambda lat, lon, **kwargs: [
                RiverDischargeDay(today + dt.timedelta(days=i), 500.0 + 100 * i) for i in range(10)
            ],
        )

    # -- user profile ------------------------------------------------------

    def test_profile_roundtrip_and_survey(self):
        resp = self.client.get("/api/user/profile")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["username"], "demo_user")
        self.assertFalse(data["has_survey_completed"])
        self.assertIsNone(data["user_profile"])

        resp = self.client.post(
            "/api/user/profile",
            json={"health_profile": {"has_respiratory_conditions": True}, "interests": {"outdoor_activities": ["cycling"]}},
        )
        self.assertEqual(resp.status_code, 200)
        profile = resp.json()["user_profile"]
        self.assertTrue(profile["health_profile"]["has_respiratory_conditions"])
        self.assertEqual(profile["interests"]["outdoor_activities"], ["cycling"])
        self.assertIsNone(profile["lifestyle_habits"])

        resp = self.client.post("/api/user/survey/complete")
        self.assertEqual(resp.status_code, 200)
        self.assertTrue(resp.json()["success"])

        data = self.client.get("/api/user/profile").json()
        self.assertTrue(data["has_survey_completed"])
        self.assertEqual(data["user_profile"]["interests"]["outdoor_activities"], ["cycling"])

    def test_profile_update_rejects_out_of_range_sensitivity(self):
        resp = self.client.post("/api/user/profile", json={"environmental_sensitivities": {"uv_sensitivity": 9}})
        self.assertEqual(resp.status_code, 422)

    def test_profile_update_rejects_null_and_keeps_stored_profile(self):
        self.client.post("/api/user/profile", json={"health_profile": {"has_respiratory_conditions": True}})
        for payload in (
            {"health_profile": {"has_respiratory_conditions": None}},
            {"environmental_sensitivities": {"uv_sensitivity": None}},
        ):
            resp = self.client.post("/api/user/profile", json=payload)
            self.assertEqual(resp.status_code, 422)

        profile = self.client.get("/api/user/profile").json()["user_profile"]
        self.assertTrue(profile["health_profile"]["has_respiratory_conditions"])
        self.assertIsNone(profile["environmental_sensitivities"])
        self.assertEqual(self.client.get("/api/weather/alerts").status_code, 200)

    # -- weather & advice --------------------------------------------------

    def test_current_weather_and_air_quality(self):
        weather = self.client.get("/api/weather/current").json()
        self.assertEqual(weather["current"]["temperature"], 33.0)
        self.assertEqual(weather["current"]["weather_description"], "Mainly clear")
        self.assertEqual(len(weather["hourly"]["time"]), 24)

        air = self.client.get("/api/weather/air-quality").json()
        self.assertEqual(air["current"]["aqi"], 120.0)
        self.assertEqual(air["current"]["aqi_category"], "Unhealthy for Sensitive Groups")

    def test_alerts_follow_profile(self):
        resp = self.client.get("/api/weather/alerts")
        self.assertEqual(resp.status_code, 200)
        alerts = resp.json()
        self.assertEqual([a["type"] for a in alerts], ["air_quality", "uv", "temperature"])
        self.assertTrue(all(a["severity"] == "warning" for a in alerts))

        self.client.post("/api/user/profile", json={"health_profile": {"has_respiratory_conditions": True}})
        alerts = self.client.get("/api/weather/alerts").json()
        self.assertIn("respiratory", alerts[0]["description"])

    def test_forecast_passthrough_endpoints(self):
        forecast = self.client.get("/api/weather/forecast").json()
        self.assertEqual(len(forecast["hours"]), 48)
        self.assertEqual(forecast["days"][0]["temperature_max"], 35.0)

        air = self.client.get("/api/weather/air-quality/forecast").json()
        self.assertEqual(air[0]["european_aqi"], 120.0)

        pollen = self.client.get("/api/weather/pollen").json()
        self.assertEqual(pollen[0]["grass"], 1.2)

    def test_historical_requests_past_year(self):
        resp = self.client.get("/api/weather/historical")
        self.assertEqual(resp.status_code, 200)
        call = self.archive_calls[0]
        self.assertEqual(call["end_date"] - call["start_date"], dt.timedelta(days=365))
        self.assertEqual(resp.json()[0]["precipitation_sum"], 2.0)

    def test_recommendation_endpoints(self):
        activities = self.client.get("/api/weather/recommendations/activities").json()
        self.assertIn("optimal_times", activities)

        clothing = self.client.get("/api/weather/recommendations/clothing").json()
        labels = [i["label"] for i in clothing["icons"]]
        self.assertIn("Face mask recommended", labels)

        health = self.client.get("/api/health/recommendations").json()
        self.assertTrue(health["temperature"]["is_hot"])
        self.assertEqual(health["uv"]["category"], "High")

    def test_upstream_failure_maps_to_503(self):
        self.data_source = self._data_source(forecast_error=UpstreamFetchError("timeout", source="forecast"))
        for path in ("/api/weather/current", "/api/weather/alerts", "/api/activities/time-slots"):
            resp = self.client.get(path)
            self.assertEqual(resp.status_code, 503, path)
            self.assertEqual(resp.json()["detail"], "Environmental data unavailable")

    # -- activities --------------------------------------------------------

    def test_time_slots(self):
        slots = self.client.get("/api/activities/time-slots", params={"hours": 3}).json()
        self.assertEqual(len(slots), 3)
        self.assertIn("suitable", slots[0])
        self.assertEqual(self.client.get("/api/activities/time-slots", params={"hours": 0}).status_code, 422)
        self.assertEqual(self.client.get("/api/activities/time-slots", params={"hours": 49}).status_code, 422)

    def test_activity_catalogs(self):
        outdoor = self.client.get("/api/activities/outdoor").json()
        self.assertEqual([a["id"] for a in outdoor], ["walking", "cycling", "parks"])
        self.assertTrue(all(0.0 <= a["suitability_score"] <= 1.0 for a in outdoor))

        indoor = self.client.get("/api/activities/indoor").json()
        self.assertTrue(all(a["indoor"] for a in indoor))

    # -- climate -----------------------------------------------------------

    def test_climate_endpoints(self):
        flood = self.client.get("/api/climate/flood-risk").json()
        self.assertEqual(flood["risk"], "moderate")
        self.assertEqual(len(flood["forecast"]), 7)

        projections = self.client.get("/api/climate/projections").json()
        self.assertEqual(projections["source"], "placeholder")

        # the fake source has no climate-model data
        self.assertEqual(self.client.get("/api/climate/data").status_code, 503)

    # -- sustainability ----------------------------------------------------

    def test_tips_and_initiatives(self):
        tips = self.client.get("/api/sustainability/tips").json()
        self.assertIn("daily_tip", tips)
        self.assertEqual(len(tips["previous_tips"]), 3)
        initiatives = self.client.get("/api/sustainability/initiatives").json()
        self.assertTrue(initiatives["initiatives"])

    def test_vote_flow(self):
        polls = self.client.get("/api/sustainability/polls").json()["polls"]
        self.assertEqual(len(polls), 2)
        self.assertFalse(polls[0]["user_voted"])

        resp = self.client.post("/api/sustainability/vote", json={"poll_id": polls[0]["id"], "option_index": 0})
        self.assertEqual(resp.status_code, 200)
        poll = resp.json()["poll"]
        self.assertEqual(poll["options"][0]["votes"], 43)
        self.assertEqual(poll["total_votes"], 101)
        self.assertEqual(poll["user_vote_index"], 0)

        again = self.client.post("/api/sustainability/vote", json={"poll_id": polls[0]["id"], "option_index": 1})
        self.assertEqual(again.status_code, 409)

        polls = self.client.get("/api/sustainability/polls").json()["polls"]
        self.assertTrue(polls[0]["user_voted"])
        self.assertEqual(polls[0]["options"][1]["votes"], 28)

    def test_vote_errors(self):
        bad_index = self.client.post("/api/sustainability/vote", json={"poll_id": 1, "option_index": 9})
        self.assertEqual(bad_index.status_code, 400)
        missing = self.client.post("/api/sustainability/vote", json={"poll_id": 999, "option_index": 0})
        self.assertEqual(missing.status_code, 404)

    def test_create_poll(self):
        resp = self.client.post(
            "/api/sustainability/polls/create",
            json={"question": "Car-free Sundays around Hoan Kiem?", "options": ["Yes", "No"], "duration": 3},
        )
        self.assertEqual(resp.status_code, 200)
        poll = resp.json()
        self.assertEqual(poll["total_votes"], 0)
        self.assertEqual([o["percentage"] for o in poll["options"]], [0, 0])

        bad = self.client.post("/api/sustainability/polls/create", json={"question": "Q?", "options": ["one"]})
        self.assertEqual(bad.status_code, 400)

    def test_ideas(self):
        ideas = self.client.get("/api/sustainability/ideas").json()["ideas"]
        self.assertEqual(len(ideas), 3)

        resp = self.client.post("/api/sustainability/ideas/submit", json={"content": "Solar bus shelters"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["author"], "User")
        self.assertEqual(len(self.client.get("/api/sustainability/ideas").json()["ideas"]), 4)

        empty = self.client.post("/api/sustainability/ideas/submit", json={"content": "  "})
        self.assertEqual(empty.status_code, 400)

    # -- chat --------------------------------------------------------------

    def test_chat_message_and_history(self):
        resp = self.client.post("/api/chat/message", json={"message": "Can I cycle to work?"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["message"], "Wear a mask if you go out this afternoon.")

        history = self.client.get("/api/chat/history").json()["messages"]
        self.assertEqual([m["role"] for m in history], ["user", "assistant"])

    def test_chat_rejects_long_message(self):
        settings.max_user_message_chars = 10
        resp = self.client.post("/api/chat/message", json={"message": "x" * 11})
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Message too long", resp.json()["detail"])
        self.assertEqual(self.llm.calls, [])

    # -- auth --------------------------------------------------------------

    def test_api_key_required_when_configured(self):
        settings.api_key = "s3cret"
        self.assertEqual(self.client.get("/api/sustainability/tips").status_code, 401)
        wrong = self.client.get("/api/sustainability/tips", headers={"X-API-Key": "nope"})
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(wrong.json()["detail"], "Invalid API key")
        ok = self.client.get("/api/sustainability/tips", headers={"X-API-Key": "s3cret"})
        self.assertEqual(ok.status_code, 200)


if __name__ == "__main__":
    unittest.main()
