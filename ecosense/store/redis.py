"""Redis-backed repositories.

Conflicting writes are serialized by Redis itself: profile merges use HSETNX
for defaults then HSET for the sent fields, votes use HINCRBY, per-user vote
records use HSETNX, and chat history uses RPUSH + LTRIM.
"""

import json
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence

from ecosense.errors import NotFoundError
from ecosense.models import (
    PROFILE_SECTIONS,
    ChatHistory,
    ChatMessage,
    Idea,
    Poll,
    PollOption,
    ProfileUpdate,
    SurveyStatus,
    UserProfile,
)
from ecosense.poll_service import validate_idea_content, validate_option_index, validate_poll_input
from ecosense.store.base import FINAL_SURVEY_STEP, Stores, merge_section, section_changes
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="store/redis_store")

DEFAULT_PREFIX = "ecosense:"


def _text(value) -> str:
    """Redis returns bytes unless the client was built with decode_responses=True."""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def _decode_hash(raw: dict) -> dict[str, str]:
    return {_text(k): _text(v) for k, v in (raw or {}).items()}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _RedisRepository:
    def __init__(self, client, prefix: str = DEFAULT_PREFIX) -> None:
        self.client = client
        self.prefix = prefix

    def _key(self, *parts) -> str:
        return self.prefix + ":".join(str(p) for p in parts)

    def _clear_prefix(self, *parts) -> None:
        for key in self.client.scan_iter(f"{self._key(*parts)}*"):
            self.client.delete(key)


class RedisProfileRepository(_RedisRepository):
    """Each survey section is a hash of JSON-encoded field values."""

    def _load_section(self, user_id: int, name: str):
        raw = _decode_hash(self.client.hgetall(self._key("profile", user_id, name)))
        if not raw:
            return None
        return PROFILE_SECTIONS[name].model_validate({k: json.loads(v) for k, v in raw.items()})

    def get_profile(self, user_id: int) -> Optional[UserProfile]:
        sections = {name: self._load_section(user_id, name) for name in PROFILE_SECTIONS}
        profile = UserProfile(**sections)
        return None if profile.is_empty() else profile

    def upsert_profile(self, user_id: int, update: ProfileUpdate) -> UserProfile:
        changes = section_changes(update)
        # validate every merged section before any write
        for name, fields in changes.items():
            merge_section(self._load_section(user_id, name), PROFILE_SECTIONS[name], fields)
        for name, fields in changes.items():
            key = self._key("profile", user_id, name)
            for field, default in PROFILE_SECTIONS[name]().model_dump().items():
                self.client.hsetnx(key, field, json.dumps(default))
            if fields:
                self.client.hset(key, mapping={k: json.dumps(v) for k, v in fields.items()})
            logger.debug("Profile section updated", extra={"user_id": user_id, "section": name})
        return self.get_profile(user_id) or UserProfile()

    def get_survey(self, user_id: int) -> Optional[SurveyStatus]:
        raw = _decode_hash(self.client.hgetall(self._key("survey", user_id)))
        if not raw:
            return None
        return SurveyStatus(completed=raw.get("completed") == "1", last_step=int(raw.get("last_step", 0)))

    def complete_survey(self, user_id: int) -> SurveyStatus:
        key = self._key("survey", user_id)
        self.client.hsetnx(key, "last_step", FINAL_SURVEY_STEP)
        self.client.hset(key, "completed", "1")
        return self.get_survey(user_id)

    def clear(self) -> None:
        self._clear_prefix("profile")
        self._clear_prefix("survey")


class RedisPollRepository(_RedisRepository):
    """Poll metadata in a hash, counts in a separate hash so HINCRBY is atomic per option."""

    def _load(self, poll_id: int) -> Optional[Poll]:
        meta = _decode_hash(self.client.hgetall(self._key("poll", poll_id)))
        if not meta:
            return None
        counts = _decode_hash(self.client.hgetall(self._key("poll", poll_id, "votes")))
        texts = json.loads(meta["options"])
        return Poll(
            id=poll_id,
            question=meta["question"],
            options=[PollOption(text=t, votes=int(counts.get(str(i), 0))) for i, t in enumerate(texts)],
            expires_at=datetime.fromisoformat(meta["expires_at"]),
            created_at=datetime.fromisoformat(meta["created_at"]),
        )

    def list_polls(self) -> List[Poll]:
        ids = [int(_text(i)) for i in self.client.lrange(self._key("polls"), 0, -1)]
        return [p for p in (self._load(i) for i in ids) if p is not None]

    def get_poll(self, poll_id: int) -> Optional[Poll]:
        return self._load(poll_id)

    def create_poll(self, question: str, options: Sequence[str], duration_days: int | None = None) -> Poll:
        question, texts, duration_days = validate_poll_input(question, options, duration_days)
        now = _utcnow()
        return self.insert_poll(
            question,
            [PollOption(text=t) for t in texts],
            expires_at=now + timedelta(days=duration_days),
            created_at=now,
        )

    def insert_poll(self, question: str, options: Sequence[PollOption], expires_at: datetime,
                    created_at: datetime) -> Poll:
        poll_id = int(self.client.incr(self._key("polls", "next_id")))
        self.client.hset(
            self._key("poll", poll_id),
            mapping={
                "question": question,
                "options": json.dumps([o.text for o in options]),
                "expires_at": expires_at.isoformat(),
                "created_at": created_at.isoformat(),
            },
        )
        self.client.hset(self._key("poll", poll_id, "votes"), mapping={str(i): o.votes for i, o in enumerate(options)})
        self.client.rpush(self._key("polls"), poll_id)
        logger.info("Poll created", extra={"poll_id": poll_id, "options": len(options)})
        return self._load(poll_id)

    def vote(self, poll_id: int, option_index: int) -> Poll:
        poll = self._load(poll_id)
        if poll is None:
            raise NotFoundError(f"Poll {poll_id} not found")
        validate_option_index(poll, option_index)
        self.client.hincrby(self._key("poll", poll_id, "votes"), str(option_index), 1)
        return self._load(poll_id)

    def record_vote(self, poll_id: int, user_id: int, option_index: int, *, overwrite: bool = False) -> bool:
        key = self._key("poll", poll_id, "voters")
        if overwrite:
            self.client.hset(key, str(user_id), option_index)
            return True
        return bool(self.client.hsetnx(key, str(user_id), option_index))

    def user_vote(self, poll_id: int, user_id: int) -> Optional[int]:
        raw = self.client.hget(self._key("poll", poll_id, "voters"), str(user_id))
        return int(_text(raw)) if raw is not None else None

    def clear(self) -> None:
        self._clear_prefix("poll")


class RedisChatRepository(_RedisRepository):
    """One list of JSON messages per user."""

    def get_history(self, user_id: int) -> Optional[ChatHistory]:
        raw = self.client.lrange(self._key("chat", user_id), 0, -1)
        if not raw:
            return None
        return ChatHistory(user_id=user_id, messages=[ChatMessage.model_validate_json(_text(m)) for m in raw])

    def append_messages(self, user_id: int, messages: Sequence[ChatMessage], *, max_messages: int) -> ChatHistory:
        key = self._key("chat", user_id)
        if messages:
            self.client.rpush(key, *[m.model_dump_json() for m in messages])
        if max_messages > 0:
            self.client.ltrim(key, -max_messages, -1)
        return self.get_history(user_id) or ChatHistory(user_id=user_id)

    def clear(self) -> None:
        self._clear_prefix("chat")


class RedisIdeaRepository(_RedisRepository):
    """Ideas as JSON strings, ordered by an id list."""

    def list_ideas(self) -> List[Idea]:
        out: List[Idea] = []
        for raw_id in self.client.lrange(self._key("ideas"), 0, -1):
            raw = self.client.get(self._key("idea", _text(raw_id)))
            if raw is not None:
                out.append(Idea.model_validate_json(_text(raw)))
        return out

    def submit_idea(self, author: str, content: str) -> Idea:
        content = validate_idea_content(content)
        return self.insert_idea(author, content, created_at=_utcnow())

    def insert_idea(self, author: str, content: str, created_at: datetime, likes: int = 0,
                    comments: int = 0) -> Idea:
        idea_id = int(self.client.incr(self._key("ideas", "next_id")))
        idea = Idea(id=idea_id, author=author, content=content, created_at=created_at, likes=likes, comments=comments)
        self.client.set(self._key("idea", idea_id), idea.model_dump_json())
        self.client.rpush(self._key("ideas"), idea_id)
        return idea

    def clear(self) -> None:
        self._clear_prefix("idea")


def build_redis_stores(client, prefix: str = DEFAULT_PREFIX) -> Stores:
    return Stores(
        profiles=RedisProfileRepository(client, prefix),
        polls=RedisPollRepository(client, prefix),
        chats=RedisChatRepository(client, prefix),
        ideas=RedisIdeaRepository(client, prefix),
    )
