import os
import unittest

from ecosense.config import Settings


class TestConfig(unittest.TestCase):
    def test_settings_defaults(self):
        previous = os.environ.pop("ECOSENSE_LLM_BASE_URL", None)
        try:
            s = Settings()
            self.assertEqual(s.llm_base_url, "https://api.groq.com/openai/v1")
            self.assertEqual(s.forecast_days, 7)
            self.assertEqual(s.timezone, "Asia/Ho_Chi_Minh")
            self.assertEqual(s.http_timeout_seconds, 10.0)
        finally:
            if previous is not None:
                os.environ["ECOSENSE_LLM_BASE_URL"] = previous

    def test_settings_env_override(self):
        previous = os.environ.get("ECOSENSE_LLM_BASE_URL")
        try:
            os.environ["ECOSENSE_LLM_BASE_URL"] = "http://example.com/"
            s = Settings()
            self.assertEqual(s.llm_base_url, "http://example.com")
        finally:
            if previous is None:
                os.environ.pop("ECOSENSE_LLM_BASE_URL", None)
            else:
                os.environ["ECOSENSE_LLM_BASE_URL"] = previous

    def test_forecast_days_override(self):
        previous = os.environ.get("ECOSENSE_FORECAST_DAYS")
        try:
            os.environ["ECOSENSE_FORECAST_DAYS"] = "3"
            s = Settings()
            self.assertEqual(s.forecast_days, 3)
        finally:
            if previous is None:
                os.environ.pop("ECOSENSE_FORECAST_DAYS", None)
            else:
                os.environ["ECOSENSE_FORECAST_DAYS"] = previous


def test_groq_api_key_alias(monkeypatch):
    monkeypatch.delenv("ECOSENSE_LLM_API_KEY", raising=False)
    monkeypatch.delenv("LLM_API_KEY", raising=False)
    monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
    assert Settings().llm_api_key == "gsk-test"


def test_store_and_vote_settings_from_env(monkeypatch):
    monkeypatch.setenv("ECOSENSE_STORE_BACKEND", "redis")
    monkeypatch.setenv("ECOSENSE_REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("ECOSENSE_ALLOW_REPEAT_VOTES", "true")
    s = Settings()
    assert s.store_backend == "redis"
    assert s.redis_url == "redis://localhost:6379/0"
    assert s.allow_repeat_votes is True


if __name__ == "__main__":
    unittest.main()
