"""Thin client for an OpenAI-compatible chat-completions API (Groq by default)."""

import time
from typing import Iterable, List, Mapping, Union

import requests

from ecosense import config
from ecosense.errors import LLMError
from ecosense.models import ChatMessage
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="llm_client")

APOLOGY_MESSAGE = (
    "I apologize, but I encountered an issue while processing your request. Please try again later."
)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}

MessageLike = Union[ChatMessage, Mapping[str, str]]


def _as_dict(message: MessageLike) -> dict:
    if isinstance(message, ChatMessage):
        return message.model_dump()
    return {"role": message["role"], "content": message["content"]}


class LLMClient:
    """Minimal client for the chat-completions endpoint."""

    def __init__(self, settings: config.Settings | None = None):
        settings = settings or config.settings
        self.url = f"{settings.llm_base_url}/chat/completions"
        self.model = settings.llm_model
        self.api_key = settings.llm_api_key
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens
        self.timeout = settings.llm_timeout_seconds
        self.max_retries = settings.llm_retries
        self.retry_backoff_sec = settings.llm_retry_backoff_seconds

    def chat(self, messages: Iterable[MessageLike]) -> str:
        """Send a chat request and return the assistant content; raises LLMError on any failure."""
        if not self.api_key:
            raise LLMError("LLM API key is not configured")

        payload = {
            "model": self.model,
            "messages": [_as_dict(m) for m in messages],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        headers = {"Content-Type": "application/json", "Authorization": f"Bearer {self.api_key}"}

        for attempt in range(self.max_retries + 1):
            try:
                r = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            except requests.exceptions.RequestException as exc:
                logger.warning("LLM POST failed", extra={"attempt": attempt + 1, "error": str(exc)})
                if attempt < self.max_retries:
                    time.sleep(self.retry_backoff_sec)
                    continue
                raise LLMError(f"LLM request failed after {attempt + 1} attempt(s): {exc}") from exc

            logger.info(
                "LLM POST completed",
                extra={"status": r.status_code, "url": mask_url(self.url), "model": self.model},
            )
            if r.status_code == 200:
                break

            error_text = (r.text or "")[:200]
            if r.status_code in RETRYABLE_STATUS and attempt < self.max_retries:
                logger.warning("LLM returned %d; retrying (attempt %d/%d).", r.status_code, attempt + 1,
                               self.max_retries + 1)
                time.sleep(self.retry_backoff_sec)
                continue
            raise LLMError(f"LLM POST failed with status {r.status_code}: {error_text} (model={self.model})")

        try:
            data = r.json()
        except ValueError as exc:
            raise LLMError(f"LLM returned non-JSON response: {r.text[:200]}") from exc

        if not isinstance(data, dict):
            raise LLMError(f"LLM returned unexpected payload: {r.text[:200]}")
        choices = data.get("choices") or []
        if not choices:
            raise LLMError("No completion received from LLM API")
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        if not isinstance(message, dict):
            raise LLMError(f"LLM returned a malformed choice: {str(choices[0])[:200]}")
        content = message.get("content") or ""
        if not isinstance(content, str):
            content = str(content)
        return content

    def complete(self, system_prompt: str, messages: Iterable[MessageLike]) -> str:
        """Chat with a system prompt prepended. Never raises; returns APOLOGY_MESSAGE on failure."""
        full: List[MessageLike] = [{"role": "system", "content": system_prompt}, *messages]
        try:
            return self.chat(full)
        except LLMError as exc:
            logger.error("LLM completion failed; returning fallback reply", extra={"error": str(exc)})
            return APOLOGY_MESSAGE


llm_client = LLMClient()


def get_llm_client() -> LLMClient:
    """FastAPI dependency returning the shared client."""
    return llm_client
