"""Shared protocols and helpers for storage backends."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Protocol, Sequence, Type, TypeVar

import pydantic
from pydantic import BaseModel

from ecosense.errors import ValidationError
from ecosense.models import (
    ChatHistory,
    ChatMessage,
    Idea,
    Poll,
    PollOption,
    ProfileUpdate,
    SurveyStatus,
    UserProfile,
)

RecordT = TypeVar("RecordT", bound=BaseModel)

# Step recorded when a survey is completed without ever having been started.
FINAL_SURVEY_STEP = 3


class ProfileRepository(Protocol):
    """Per-user survey answers and survey status."""

    def get_profile(self, user_id: int) -> Optional[UserProfile]:
        """Return the profile, or None if no section was ever written."""

    def upsert_profile(self, user_id: int, update: ProfileUpdate) -> UserProfile:
        """Merge the sections/fields present in `update`, creating sections with defaults first."""

    def get_survey(self, user_id: int) -> Optional[SurveyStatus]:
        """Return survey status, or None if the survey was never started."""

    def complete_survey(self, user_id: int) -> SurveyStatus:
        """Mark the survey completed."""

    def clear(self) -> None:
        """Remove all profiles and survey records."""


class PollRepository(Protocol):
    """Community polls, vote counts and per-user vote records."""

    def list_polls(self) -> List[Poll]:
        """Return all polls in creation order."""

    def get_poll(self, poll_id: int) -> Optional[Poll]:
        """Return a poll or None."""

    def create_poll(self, question: str, options: Sequence[str], duration_days: int | None = None) -> Poll:
        """Validate and persist a new poll with zero votes."""

    def insert_poll(self, question: str, options: Sequence[PollOption], expires_at: datetime,
                    created_at: datetime) -> Poll:
        """Persist a poll with pre-existing counts (seeding)."""

    def vote(self, poll_id: int, option_index: int) -> Poll:
        """Atomically increment one option's count and return the updated poll."""

    def record_vote(self, poll_id: int, user_id: int, option_index: int, *, overwrite: bool = False) -> bool:
        """Store the user's choice; return False if one exists and `overwrite` is off."""

    def user_vote(self, poll_id: int, user_id: int) -> Optional[int]:
        """Return the option index the user voted for, if any."""

    def clear(self) -> None:
        """Remove all polls and votes."""


class ChatRepository(Protocol):
    """Per-user chat transcripts."""

    def get_history(self, user_id: int) -> Optional[ChatHistory]:
        """Return the transcript or None."""

    def append_messages(self, user_id: int, messages: Sequence[ChatMessage], *, max_messages: int) -> ChatHistory:
        """Append messages, keep only the newest `max_messages`, and return the transcript."""

    def clear(self) -> None:
        """Remove all transcripts."""


class IdeaRepository(Protocol):
    """Community sustainability ideas."""

    def list_ideas(self) -> List[Idea]:
        """Return ideas oldest first."""

    def submit_idea(self, author: str, content: str) -> Idea:
        """Validate and persist a new idea."""

    def insert_idea(self, author: str, content: str, created_at: datetime, likes: int = 0,
                    comments: int = 0) -> Idea:
        """Persist an idea with existing counters (seeding)."""

    def clear(self) -> None:
        """Remove all ideas."""


@dataclass
class Stores:
    """The four repositories the HTTP layer depends on."""
    profiles: ProfileRepository
    polls: PollRepository
    chats: ChatRepository
    ideas: IdeaRepository

    def clear(self) -> None:
        for repo in (self.profiles, self.polls, self.chats, self.ideas):
            repo.clear()


def merge_section(current: Optional[RecordT], record_type: Type[RecordT], changes: dict) -> RecordT:
    """Apply `changes` over `current` (or over the record defaults when absent)."""
    base = current.model_dump() if current is not None else record_type().model_dump()
    base.update(changes)
    try:
        return record_type.model_validate(base)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid {record_type.__name__}: {exc.errors()[0]['msg']}") from exc


def section_changes(update: ProfileUpdate) -> dict[str, dict]:
    """Section name -> fields actually sent, skipping sections not in the payload."""
    out: dict[str, dict] = {}
    for name in update.model_fields_set:
        section = getattr(update, name)
        if section is None:
            continue
        out[name] = section.model_dump(exclude_unset=True)
    return out
