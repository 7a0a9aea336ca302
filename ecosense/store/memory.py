"""In-memory repositories, intended for development and tests."""

import threading
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

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

logger = get_tagged_logger(__name__, tag="store/in_memory_store")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryProfileRepository:
    """Thread-safe profile store keyed by user id."""

    def __init__(self) -> None:
        self._profiles: Dict[int, UserProfile] = {}
        self._surveys: Dict[int, SurveyStatus] = {}
        self._lock = threading.Lock()

    def get_profile(self, user_id: int) -> Optional[UserProfile]:
        with self._lock:
            profile = self._profiles.get(user_id)
            return profile.model_copy(deep=True) if profile else None

    def upsert_profile(self, user_id: int, update: ProfileUpdate) -> UserProfile:
        changes = section_changes(update)
        with self._lock:
            current = self._profiles.get(user_id) or UserProfile()
            merged = {
                name: merge_section(getattr(current, name), PROFILE_SECTIONS[name], fields)
                for name, fields in changes.items()
            }
            profile = current.model_copy(update=merged)
            self._profiles[user_id] = profile
            logger.debug("Profile updated", extra={"user_id": user_id, "sections": sorted(changes)})
            return profile.model_copy(deep=True)

    def get_survey(self, user_id: int) -> Optional[SurveyStatus]:
        with self._lock:
            survey = self._surveys.get(user_id)
            return survey.model_copy() if survey else None

    def complete_survey(self, user_id: int) -> SurveyStatus:
        with self._lock:
            survey = self._surveys.get(user_id)
            if survey is None:
                survey = SurveyStatus(completed=True, last_step=FINAL_SURVEY_STEP)
            else:
                survey = survey.model_copy(update={"completed": True})
            self._surveys[user_id] = survey
            return survey.model_copy()

    def clear(self) -> None:
        with self._lock:
            self._profiles.clear()
            self._surveys.clear()


class InMemoryPollRepository:
    """Thread-safe poll store; votes are incremented under the lock."""

    def __init__(self) -> None:
        self._polls: Dict[int, Poll] = {}
        self._votes: Dict[Tuple[int, int], int] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def list_polls(self) -> List[Poll]:
        with self._lock:
            return [p.model_copy(deep=True) for p in self._polls.values()]

    def get_poll(self, poll_id: int) -> Optional[Poll]:
        with self._lock:
            poll = self._polls.get(poll_id)
            return poll.model_copy(deep=True) if poll else None

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
        with self._lock:
            poll = Poll(
                id=self._next_id,
                question=question,
                options=[o.model_copy() for o in options],
                expires_at=expires_at,
                created_at=created_at,
            )
            self._polls[poll.id] = poll
            self._next_id += 1
            logger.info("Poll created", extra={"poll_id": poll.id, "options": len(poll.options)})
            return poll.model_copy(deep=True)

    def vote(self, poll_id: int, option_index: int) -> Poll:
        with self._lock:
            poll = self._polls.get(poll_id)
            if poll is None:
                raise NotFoundError(f"Poll {poll_id} not found")
            validate_option_index(poll, option_index)
            poll.options[option_index].votes += 1
            return poll.model_copy(deep=True)

    def record_vote(self, poll_id: int, user_id: int, option_index: int, *, overwrite: bool = False) -> bool:
        with self._lock:
            key = (poll_id, user_id)
            if key in self._votes and not overwrite:
                return False
            self._votes[key] = option_index
            return True

    def user_vote(self, poll_id: int, user_id: int) -> Optional[int]:
        with self._lock:
            return self._votes.get((poll_id, user_id))

    def clear(self) -> None:
        with self._lock:
            self._polls.clear()
            self._votes.clear()
            self._next_id = 1


class InMemoryChatRepository:
    """Thread-safe chat transcripts with a retention cap."""

    def __init__(self) -> None:
        self._histories: Dict[int, List[ChatMessage]] = {}
        self._lock = threading.Lock()

    def get_history(self, user_id: int) -> Optional[ChatHistory]:
        with self._lock:
            messages = self._histories.get(user_id)
            if messages is None:
                return None
            return ChatHistory(user_id=user_id, messages=list(messages))

    def append_messages(self, user_id: int, messages: Sequence[ChatMessage], *, max_messages: int) -> ChatHistory:
        with self._lock:
            history = self._histories.setdefault(user_id, [])
            history.extend(messages)
            if max_messages > 0 and len(history) > max_messages:
                del history[: len(history) - max_messages]
            return ChatHistory(user_id=user_id, messages=list(history))

    def clear(self) -> None:
        with self._lock:
            self._histories.clear()


class InMemoryIdeaRepository:
    """Thread-safe list of community ideas."""

    def __init__(self) -> None:
        self._ideas: List[Idea] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def list_ideas(self) -> List[Idea]:
        with self._lock:
            return [i.model_copy() for i in self._ideas]

    def submit_idea(self, author: str, content: str) -> Idea:
        content = validate_idea_content(content)
        return self.insert_idea(author, content, created_at=_utcnow())

    def insert_idea(self, author: str, content: str, created_at: datetime, likes: int = 0,
                    comments: int = 0) -> Idea:
        with self._lock:
            idea = Idea(id=self._next_id, author=author, content=content, created_at=created_at,
                        likes=likes, comments=comments)
            self._ideas.append(idea)
            self._next_id += 1
            return idea.model_copy()

    def clear(self) -> None:
        with self._lock:
            self._ideas.clear()
            self._next_id = 1


def build_in_memory_stores() -> Stores:
    return Stores(
        profiles=InMemoryProfileRepository(),
        polls=InMemoryPollRepository(),
        chats=InMemoryChatRepository(),
        ideas=InMemoryIdeaRepository(),
    )
