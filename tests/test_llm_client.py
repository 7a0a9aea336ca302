import unittest

import requests

from ecosense import llm_client as lc
from ecosense.config import Settings
from ecosense.errors import LLMError
from ecosense.llm_client import APOLOGY_MESSAGE, LLMClient
from ecosense.models import ChatMessage


class DummyResponse:
    def __init__(self, status_code=200, content="ok", payload=None):
        self.status_code = status_code
        self.text = content
        self._payload = payload if payload is not None else {"choices": [{"message": {"content": content}}]}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _settings(**overrides):
    values = dict(llm_api_key="test-key", llm_retries=1, llm_retry_backoff_seconds=0)
    values.update(overrides)
    return Settings(**values)


class TestLLMClient(unittest.TestCase):
    def setUp(self):
        self._orig_post = lc.requests.post
        self.calls = []

    def tearDown(self):
        lc.requests.post = self._orig_post

    def _install(self, *responses):
        queue = list(responses)

        def fake_post(url, json=None, headers=None, timeout=None):
            self.calls.append({"url": url, "json": json, "headers": headers, "timeout": timeout})
            response = queue.pop(0)
            if isinstance(response, Exception):
                raise response
            return response

        lc.requests.post = fake_post

    def test_chat_success(self):
        self._install(DummyResponse(200, "Xin chao"))
        client = LLMClient(_settings(llm_base_url="https://llm.example.com/v1/"))
        out = client.chat([ChatMessage(role="user", content="hi"), {"role": "assistant", "content": "hello"}])

        self.assertEqual(out, "Xin chao")
        call = self.calls[0]
        self.assertEqual(call["url"], "https://llm.example.com/v1/chat/completions")
        self.assertEqual(call["headers"]["Authorization"], "Bearer test-key")
        self.assertEqual(call["json"]["messages"][0], {"role": "user", "content": "hi"})
        self.assertEqual(call["json"]["model"], client.model)
        self.assertEqual(call["timeout"], client.timeout)

    def test_missing_api_key(self):
        self._install()
        client = LLMClient(_settings(llm_api_key=None))
        with self.assertRaises(LLMError):
            client.chat([{"role": "user", "content": "hi"}])
        self.assertEqual(self.calls, [])

    def test_chat_non_200(self):
        self._install(DummyResponse(401, "unauthorized"))
        with self.assertRaises(LLMError):
            LLMClient(_settings()).chat([])
        self.assertEqual(len(self.calls), 1)

    def test_retryable_status_is_retried(self):
        self._install(DummyResponse(503, "busy"), DummyResponse(200, "done"))
        self.assertEqual(LLMClient(_settings()).chat([]), "done")
        self.assertEqual(len(self.calls), 2)

    def test_connection_error_exhausts_retries(self):
        self._install(requests.exceptions.ConnectionError("down"), requests.exceptions.Timeout("slow"))
        with self.assertRaises(LLMError):
            LLMClient(_settings()).chat([])
        self.assertEqual(len(self.calls), 2)

    def test_empty_choices(self):
        self._install(DummyResponse(200, payload={"choices": []}))
        with self.assertRaises(LLMError):
            LLMClient(_settings()).chat([])

    def test_non_json_body(self):
        self._install(DummyResponse(200, "<html>", payload=ValueError("bad json")))
        with self.assertRaises(LLMError):
            LLMClient(_settings()).chat([])

    def test_unexpected_payload_shapes(self):
        for payload in (["unexpected"], {"choices": ["text"]}, {"choices": [{"message": "text"}]}):
            self._install(DummyResponse(200, "odd", payload=payload))
            with self.assertRaises(LLMError):
                LLMClient(_settings()).chat([])


def test_complete_prepends_system_prompt(monkeypatch):
    seen = []

    def fake_post(url, json=None, headers=None, timeout=None):
        seen.append(json["messages"])
        return DummyResponse(200, "Stay indoors this afternoon.")

    monkeypatch.setattr(lc.requests, "post", fake_post)
    reply = LLMClient(_settings()).complete("You are helpful.", [ChatMessage(role="user", content="Run today?")])
    assert reply == "Stay indoors this afternoon."
    assert seen[0][0] == {"role": "system", "content": "You are helpful."}
    assert seen[0][1] == {"role": "user", "content": "Run today?"}


def test_complete_returns_apology_on_failure(monkeypatch):
    monkeypatch.setattr(lc.requests, "post", lambda url, json=None, headers=None, timeout=None: DummyResponse(500))
    assert LLMClient(_settings(llm_retries=0)).complete("sys", []) == APOLOGY_MESSAGE
    assert LLMClient(_settings(llm_api_key=None)).complete("sys", []) == APOLOGY_MESSAGE


def test_complete_returns_apology_on_malformed_reply(monkeypatch):
    monkeypatch.setattr(
        lc.requests, "post", lambda url, json=None, headers=None, timeout=None: DummyResponse(200, payload=["unexpected"])
    )
    assert LLMClient(_settings()).complete("sys", []) == APOLOGY_MESSAGE


if __name__ == "__main__":
    unittest.main()
