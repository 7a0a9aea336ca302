"""Application configuration pulled from environment variables via pydantic."""

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration for the Ecosense service."""
    model_config = SettingsConfigDict(env_prefix="ECOSENSE_", extra="ignore", populate_by_name=True)

    # Hanoi city centre
    latitude: float = 21.0245
    longitude: float = 105.8412
    timezone: str = "Asia/Ho_Chi_Minh"

    data_source: str = "open_meteo"
    forecast_days: int = 7
    http_timeout_seconds: float = 10.0
    http_cache_seconds: int = 600
    http_retries: int = 3

    llm_base_url: str = "https://api.groq.com/openai/v1"
    llm_model: str = "llama3-70b-8192"
    llm_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("llm_api_key", "ECOSENSE_LLM_API_KEY", "GROQ_API_KEY"),
    )
    llm_temperature: float = 0.7
    llm_max_tokens: int = 1024
    llm_timeout_seconds: float = 60.0
    llm_retries: int = 1
    llm_retry_backoff_seconds: float = 0.5

    store_backend: str = "memory"  # options: memory, redis
    redis_url: str | None = None
    seed_demo_data: bool = True

    api_key: str | None = None
    demo_user_id: int = 0
    max_user_message_chars: int = 2000
    max_chat_history_messages: int = 50
    allow_repeat_votes: bool = False

    @field_validator("llm_base_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")


settings = Settings()
