"""Chat assistant: system prompt built from the user's profile, history persisted per user."""

from __future__ import annotations

from typing import List

from ecosense import config
from ecosense.errors import ValidationError
from ecosense.llm_client import LLMClient
from ecosense.models import ChatMessage, UserProfile
from ecosense.store import ChatRepository, ProfileRepository
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="chat_service")

BASE_SYSTEM_PROMPT = (
    "You are an AI assistant specializing in environmental information for Hanoi, Vietnam. "
    "Provide accurate, helpful information about Hanoi's weather, air quality, climate, and "
    "sustainability. Keep responses concise."
)

HIGH_SENSITIVITY = 4

# (sensitivity field, phrase)
_SENSITIVITY_PHRASES = (
    ("pollution_sensitivity", "pollution"),
    ("uv_sensitivity", "UV radiation"),
    ("heat_sensitivity", "heat"),
    ("cold_sensitivity", "cold"),
)


def build_system_prompt(profile: UserProfile | None) -> str:
    """Base prompt plus declared health flags and any sensitivity rated 4 or higher."""
    prompt = BASE_SYSTEM_PROMPT
    if profile is None:
        return prompt

    health = profile.health_profile
    if health is not None:
        prompt += " User has"
        if health.has_respiratory_conditions:
            prompt += " respiratory conditions,"
        if health.has_allergies:
            prompt += " allergies,"
        if health.cardiovascular_concerns:
            prompt += " cardiovascular concerns,"
        if health.skin_conditions:
            prompt += " skin conditions,"
        prompt += f" and their fitness level is {health.fitness_level or 'unknown'}."

    sensitivities = profile.environmental_sensitivities
    if sensitivities is not None:
        prompt += " User is"
        for field, phrase in _SENSITIVITY_PHRASES:
            if getattr(sensitivities, field) >= HIGH_SENSITIVITY:
                prompt += f" very sensitive to {phrase},"
        prompt += " consider these sensitivities in your responses."

    return prompt


def get_history(chats: ChatRepository, user_id: int) -> List[ChatMessage]:
    history = chats.get_history(user_id)
    return list(history.messages) if history else []


def send_message(
    user_id: int,
    message: str,
    *,
    profiles: ProfileRepository,
    chats: ChatRepository,
    llm: LLMClient,
    settings: config.Settings | None = None,
) -> str:
    """Send one user message to the assistant and persist both sides of the exchange."""
    settings = settings or config.settings
    message = (message or "").strip()
    if not message:
        raise ValidationError("Message must not be empty")
    if len(message) > settings.max_user_message_chars:
        raise ValidationError(f"Message too long; limit {settings.max_user_message_chars} characters.")

    user_message = ChatMessage(role="user", content=message)
    prior = get_history(chats, user_id)
    # The provider only sees the retained window, including the new message.
    window = (prior + [user_message])[-settings.max_chat_history_messages:]

    system_prompt = build_system_prompt(profiles.get_profile(user_id))
    reply = llm.complete(system_prompt, window)

    chats.append_messages(
        user_id,
        [user_message, ChatMessage(role="assistant", content=reply)],
        max_messages=settings.max_chat_history_messages,
    )
    logger.info("Chat exchange stored", extra={"user_id": user_id, "history_len": len(window) + 1})
    return reply
