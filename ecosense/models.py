"""Pydantic models for stored records: survey profile, polls, chat history and ideas."""

from __future__ import annotations

from datetime import datetime
from typing import ClassVar, List, Literal, Type

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Record(BaseModel):
    model_config = ConfigDict(extra="forbid")


class HealthProfile(_Record):
    """Health answers from the survey. The boolean flags drive the rules; the lists are descriptive."""
    respiratory_conditions: List[str] = Field(default_factory=list)
    has_respiratory_conditions: bool = False
    allergies: List[str] = Field(default_factory=list)
    has_allergies: bool = False
    cardiovascular_concerns: bool = False
    skin_conditions: bool = False
    fitness_level: str | None = None


class LifestyleHabits(_Record):
    daily_routine: str | None = None
    transportation: List[str] = Field(default_factory=list)
    dietary_preferences: List[str] = Field(default_factory=list)
    sleep_habits: str | None = None


class EnvironmentalSensitivities(_Record):
    """Self-rated susceptibility, 1 (not sensitive) to 5 (very sensitive)."""
    pollution_sensitivity: int = Field(default=3, ge=1, le=5)
    uv_sensitivity: int = Field(default=3, ge=1, le=5)
    heat_sensitivity: int = Field(default=3, ge=1, le=5)
    cold_sensitivity: int = Field(default=3, ge=1, le=5)


class Interests(_Record):
    outdoor_activities: List[str] = Field(default_factory=list)
    clothing_style: str | None = None
    sustainability_interest: int = Field(default=3, ge=1, le=5)
    notifications: List[str] = Field(default_factory=list)


class UserProfile(_Record):
    """All four survey sections; each one is absent until first written."""
    health_profile: HealthProfile | None = None
    lifestyle_habits: LifestyleHabits | None = None
    environmental_sensitivities: EnvironmentalSensitivities | None = None
    interests: Interests | None = None

    def is_empty(self) -> bool:
        return not any(
            (self.health_profile, self.lifestyle_habits, self.environmental_sensitivities, self.interests)
        )


def _nullable(record_type: Type[_Record], name: str) -> bool:
    field = record_type.model_fields[name]
    return field.default is None and field.default_factory is None


class _SectionUpdate(_Record):
    """Partial section write. Omitted fields keep their stored value; null is only allowed where the record allows it."""
    record_type: ClassVar[Type[_Record]]

    @model_validator(mode="after")
    def reject_null_for_required_fields(self):
        nulled = sorted(
            name for name in self.model_fields_set
            if getattr(self, name) is None and not _nullable(self.record_type, name)
        )
        if nulled:
            raise ValueError(f"{', '.join(nulled)} cannot be null")
        return self


class HealthProfileUpdate(_SectionUpdate):
    record_type = HealthProfile

    respiratory_conditions: List[str] | None = None
    has_respiratory_conditions: bool | None = None
    allergies: List[str] | None = None
    has_allergies: bool | None = None
    cardiovascular_concerns: bool | None = None
    skin_conditions: bool | None = None
    fitness_level: str | None = None


class LifestyleHabitsUpdate(_SectionUpdate):
    record_type = LifestyleHabits

    daily_routine: str | None = None
    transportation: List[str] | None = None
    dietary_preferences: List[str] | None = None
    sleep_habits: str | None = None


class EnvironmentalSensitivitiesUpdate(_SectionUpdate):
    record_type = EnvironmentalSensitivities

    pollution_sensitivity: int | None = Field(default=None, ge=1, le=5)
    uv_sensitivity: int | None = Field(default=None, ge=1, le=5)
    heat_sensitivity: int | None = Field(default=None, ge=1, le=5)
    cold_sensitivity: int | None = Field(default=None, ge=1, le=5)


class InterestsUpdate(_SectionUpdate):
    record_type = Interests

    outdoor_activities: List[str] | None = None
    clothing_style: str | None = None
    sustainability_interest: int | None = Field(default=None, ge=1, le=5)
    notifications: List[str] | None = None


class ProfileUpdate(_Record):
    """Partial profile write; only the fields actually sent are merged."""
    health_profile: HealthProfileUpdate | None = None
    lifestyle_habits: LifestyleHabitsUpdate | None = None
    environmental_sensitivities: EnvironmentalSensitivitiesUpdate | None = None
    interests: InterestsUpdate | None = None


# Section name -> stored record type
PROFILE_SECTIONS = {
    "health_profile": HealthProfile,
    "lifestyle_habits": LifestyleHabits,
    "environmental_sensitivities": EnvironmentalSensitivities,
    "interests": Interests,
}


class SurveyStatus(_Record):
    completed: bool = False
    last_step: int = 0


class PollOption(_Record):
    text: str
    votes: int = 0


class Poll(_Record):
    id: int
    question: str
    options: List[PollOption]
    expires_at: datetime
    created_at: datetime


class PollVote(_Record):
    poll_id: int
    user_id: int
    option_index: int


class PollOptionView(_Record):
    text: str
    votes: int
    percentage: int


class PollView(_Record):
    """Poll as shown to one user, with percentages recomputed from the raw counts."""
    id: int
    question: str
    options: List[PollOptionView]
    total_votes: int
    expires_at: datetime
    created_at: datetime
    user_voted: bool = False
    user_vote_index: int | None = None


class ChatMessage(_Record):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatHistory(_Record):
    user_id: int
    messages: List[ChatMessage] = Field(default_factory=list)


class Idea(_Record):
    id: int
    author: str
    content: str
    created_at: datetime
    likes: int = 0
    comments: int = 0
