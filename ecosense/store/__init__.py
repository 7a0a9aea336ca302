"""Storage backends for profiles, polls, chat history and ideas."""

from .base import ChatRepository, IdeaRepository, PollRepository, ProfileRepository, Stores
from .memory import (
    InMemoryChatRepository,
    InMemoryIdeaRepository,
    InMemoryPollRepository,
    InMemoryProfileRepository,
    build_in_memory_stores,
)
from .redis import (
    RedisChatRepository,
    RedisIdeaRepository,
    RedisPollRepository,
    RedisProfileRepository,
    build_redis_stores,
)

__all__ = [
    "Stores",
    "ProfileRepository",
    "PollRepository",
    "ChatRepository",
    "IdeaRepository",
    "InMemoryProfileRepository",
    "InMemoryPollRepository",
    "InMemoryChatRepository",
    "InMemoryIdeaRepository",
    "build_in_memory_stores",
    "RedisProfileRepository",
    "RedisPollRepository",
    "RedisChatRepository",
    "RedisIdeaRepository",
    "build_redis_stores",
]
