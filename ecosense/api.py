"""HTTP API for the Ecosense Hanoi environmental assistant."""

import datetime as dt
import hmac
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from ecosense import chat_service, climate, live_updates, poll_service, recommendation_engine, sustainability
from ecosense.activity_catalog import indoor_activities, outdoor_activities
from ecosense.config import settings
from ecosense.data_sources import AirHour, ArchiveDay, EnvironmentalDataSource, PollenHour, build_data_source
from ecosense.domain import (
    ActivityCatalogEntry,
    ActivityRecommendations,
    Alert,
    ClimateProjections,
    ClimateSummary,
    ClothingRecommendations,
    EnvironmentalSnapshot,
    FloodRiskReport,
    HealthRecommendations,
    TimeSlot,
)
from ecosense.environment_service import air_quality_view, current_weather_view, get_environmental_snapshot
from ecosense.llm_client import LLMClient, get_llm_client
from ecosense.models import ChatMessage, Idea, PollView, ProfileUpdate, SurveyStatus, UserProfile
from ecosense.store import Stores
from ecosense.store_manager import get_stores
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="ecosense/api")

HISTORICAL_LOOKBACK_DAYS = 365
DEMO_USERNAME = "demo_user"
DEFAULT_IDEA_AUTHOR = "User"


def require_api_key(x_api_key: str | None = Header(default=None)):
    """
    Validate the X-API-Key header against the configured static key.
    With no key configured every request is allowed (dev/default mode).
    """
    if not settings.api_key:
        return

    if not x_api_key:
        logger.debug("No API key provided")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing API key")

    if hmac.compare_digest(str(x_api_key), str(settings.api_key)):
        return

    logger.debug("Invalid API key provided")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")


router = APIRouter(dependencies=[Depends(require_api_key)])
DATA_SOURCE = build_data_source(settings)


def get_data_source() -> EnvironmentalDataSource:
    return DATA_SOURCE


def get_snapshot(data_source: EnvironmentalDataSource = Depends(get_data_source)) -> EnvironmentalSnapshot:
    """Fresh snapshot per request; UpstreamFetchError surfaces as 503."""
    return get_environmental_snapshot(data_source, settings=settings)


def get_profile(stores: Stores = Depends(get_stores)) -> Optional[UserProfile]:
    return stores.profiles.get_profile(settings.demo_user_id)


# ---------------------------------------------------------------------------
# Request / response payloads
# ---------------------------------------------------------------------------

class UserProfileResponse(BaseModel):
    """Demo user plus their survey state and stored profile."""
    id: int
    username: str
    has_survey_completed: bool
    user_profile: UserProfile | None = None


class ProfileResponse(BaseModel):
    user_profile: UserProfile


class SurveyCompleteResponse(BaseModel):
    success: bool = True
    survey: SurveyStatus


class InitiativesResponse(BaseModel):
    initiatives: List[sustainability.CommunityEvent]


class PollsResponse(BaseModel):
    polls: List[PollView]


class VoteRequest(BaseModel):
    poll_id: int
    option_index: int


class VoteResponse(BaseModel):
    success: bool = True
    poll: PollView


class CreatePollRequest(BaseModel):
    question: str
    options: List[str]
    duration: int | None = Field(default=None, description="Days until the poll expires (default 7).")


class IdeasResponse(BaseModel):
    ideas: List[Idea]


class SubmitIdeaRequest(BaseModel):
    content: str
    author: str | None = None


class ChatRequest(BaseModel):
    """Incoming chat message payload."""
    message: str


class ChatResponse(BaseModel):
    message: str


class ChatHistoryResponse(BaseModel):
    messages: List[ChatMessage]


# ---------------------------------------------------------------------------
# User profile & survey
# ---------------------------------------------------------------------------

@router.get("/user/profile", response_model=UserProfileResponse)
def read_user_profile(stores: Stores = Depends(get_stores)):
    """Return the demo user's survey status and profile."""
    user_id = settings.demo_user_id
    survey = stores.profiles.get_survey(user_id)
    return UserProfileResponse(
        id=user_id,
        username=DEMO_USERNAME,
        has_survey_completed=bool(survey and survey.completed),
        user_profile=stores.profiles.get_profile(user_id),
    )


@router.post("/user/profile", response_model=ProfileResponse)
def update_user_profile(update: ProfileUpdate, stores: Stores = Depends(get_stores)):
    """Merge the sent sections and fields into the stored profile."""
    profile = stores.profiles.upsert_profile(settings.demo_user_id, update)
    logger.info("Profile updated", extra={"user_id": settings.demo_user_id})
    return ProfileResponse(user_profile=profile)


@router.post("/user/survey/complete", response_model=SurveyCompleteResponse)
def complete_survey(stores: Stores = Depends(get_stores)):
    return SurveyCompleteResponse(survey=stores.profiles.complete_survey(settings.demo_user_id))


# ---------------------------------------------------------------------------
# Weather
# ---------------------------------------------------------------------------

@router.get("/weather/current")
def read_current_weather(snapshot: EnvironmentalSnapshot = Depends(get_snapshot)):
    return current_weather_view(snapshot)


@router.get("/weather/air-quality")
def read_air_quality(snapshot: EnvironmentalSnapshot = Depends(get_snapshot)):
    return air_quality_view(snapshot)


@router.get("/weather/forecast")
def read_forecast(data_source: EnvironmentalDataSource = Depends(get_data_source)):
    """Hourly and daily forecast as returned by the data source."""
    return data_source.fetch_forecast(
        settings.latitude,
        settings.longitude,
        timezone=settings.timezone,
        forecast_days=settings.forecast_days,
    )


@router.get("/weather/air-quality/forecast", response_model=List[AirHour])
def read_air_quality_forecast(data_source: EnvironmentalDataSource = Depends(get_data_source)):
    return data_source.fetch_air_hours(
        settings.latitude,
        settings.longitude,
        timezone=settings.timezone,
        forecast_days=settings.forecast_days,
    )


@router.get("/weather/historical", response_model=List[ArchiveDay])
def read_historical(data_source: EnvironmentalDataSource = Depends(get_data_source)):
    """Observed daily weather for the past year."""
    today = dt.date.today()
    return data_source.fetch_archive_days(
        settings.latitude,
        settings.longitude,
        start_date=today - dt.timedelta(days=HISTORICAL_LOOKBACK_DAYS),
        end_date=today,
        timezone=settings.timezone,
    )


@router.get("/weather/pollen", response_model=List[PollenHour])
def read_pollen(data_source: EnvironmentalDataSource = Depends(get_data_source)):
    return data_source.fetch_pollen_hours(
        settings.latitude,
        settings.longitude,
        timezone=settings.timezone,
        forecast_days=settings.forecast_days,
    )


@router.get("/weather/alerts", response_model=List[Alert])
def read_alerts(
    snapshot: EnvironmentalSnapshot = Depends(get_snapshot),
    profile: Optional[UserProfile] = Depends(get_profile),
):
    """Personalized alerts for the current hour."""
    return recommendation_engine.compute_alerts(snapshot, profile)


@router.get("/weather/recommendations/activities", response_model=ActivityRecommendations)
def read_activity_recommendations(
    snapshot: EnvironmentalSnapshot = Depends(get_snapshot),
    profile: Optional[UserProfile] = Depends(get_profile),
):
    return recommendation_engine.compute_activity_recommendations(snapshot, profile)


@router.get("/weather/recommendations/clothing", response_model=ClothingRecommendations)
def read_clothing_recommendations(
    snapshot: EnvironmentalSnapshot = Depends(get_snapshot),
    profile: Optional[UserProfile] = Depends(get_profile),
):
    return recommendation_engine.compute_clothing_recommendations(snapshot, profile)


@router.get("/health/recommendations", response_model=HealthRecommendations)
def read_health_recommendations(snapshot: EnvironmentalSnapshot = Depends(get_snapshot)):
    return recommendation_engine.compute_health_recommendations(snapshot)


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------

@router.get("/activities/time-slots", response_model=List[TimeSlot])
def read_time_slots(
    hours: int = Query(default=recommendation_engine.DEFAULT_TIME_SLOT_HOURS, ge=1, le=48),
    snapshot: EnvironmentalSnapshot = Depends(get_snapshot),
    profile: Optional[UserProfile] = Depends(get_profile),
):
    return recommendation_engine.compute_time_slots(snapshot, profile, hours=hours)


@router.get("/activities/outdoor", response_model=List[ActivityCatalogEntry])
def read_outdoor_activities(
    snapshot: EnvironmentalSnapshot = Depends(get_snapshot),
    profile: Optional[UserProfile] = Depends(get_profile),
):
    return outdoor_activities(snapshot, profile)


@router.get("/activities/indoor", response_model=List[ActivityCatalogEntry])
def read_indoor_activities(profile: Optional[UserProfile] = Depends(get_profile)):
    return indoor_activities(profile)


# ---------------------------------------------------------------------------
# Climate
# ---------------------------------------------------------------------------

@router.get("/climate/data", response_model=ClimateSummary)
def read_climate_data(data_source: EnvironmentalDataSource = Depends(get_data_source)):
    return climate.get_climate_summary(data_source, settings=settings)


@router.get("/climate/flood-risk", response_model=FloodRiskReport)
def read_flood_risk(data_source: EnvironmentalDataSource = Depends(get_data_source)):
    return climate.get_flood_risk(data_source, settings=settings)


@router.get("/climate/projections", response_model=ClimateProjections)
def read_climate_projections():
    return climate.placeholder_projections()


# ---------------------------------------------------------------------------
# Sustainability & community
# ---------------------------------------------------------------------------

@router.get("/sustainability/tips", response_model=sustainability.TipsResponse)
def read_tips():
    return sustainability.tips_for()


@router.get("/sustainability/initiatives", response_model=InitiativesResponse)
def read_initiatives():
    return InitiativesResponse(initiatives=sustainability.community_events())


@router.get("/sustainability/polls", response_model=PollsResponse)
def read_polls(stores: Stores = Depends(get_stores)):
    return PollsResponse(polls=poll_service.list_poll_views(stores.polls, settings.demo_user_id))


@router.post("/sustainability/vote", response_model=VoteResponse)
async def vote(req: VoteRequest, stores: Stores = Depends(get_stores)):
    """Cast the demo user's vote and push the new tally to subscribers."""
    view = await run_in_threadpool(
        poll_service.cast_vote,
        stores.polls,
        req.poll_id,
        req.option_index,
        settings.demo_user_id,
        allow_repeat=settings.allow_repeat_votes,
    )
    await live_updates.manager.broadcast(
        {"type": "poll_update", "poll": view.model_dump(mode="json")},
        channel=live_updates.POLLS_CHANNEL,
    )
    return VoteResponse(poll=view)


@router.post("/sustainability/polls/create", response_model=PollView)
async def create_poll(req: CreatePollRequest, stores: Stores = Depends(get_stores)):
    poll = await run_in_threadpool(stores.polls.create_poll, req.question, req.options, req.duration)
    view = poll_service.tally(poll)
    await live_updates.manager.broadcast(
        {"type": "poll_created", "poll": view.model_dump(mode="json")},
        channel=live_updates.POLLS_CHANNEL,
    )
    return view


@router.get("/sustainability/ideas", response_model=IdeasResponse)
def read_ideas(stores: Stores = Depends(get_stores)):
    return IdeasResponse(ideas=stores.ideas.list_ideas())


@router.post("/sustainability/ideas/submit", response_model=Idea)
def submit_idea(req: SubmitIdeaRequest, stores: Stores = Depends(get_stores)):
    author = (req.author or "").strip() or DEFAULT_IDEA_AUTHOR
    return stores.ideas.submit_idea(author, req.content)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

@router.get("/chat/history", response_model=ChatHistoryResponse)
def read_chat_history(stores: Stores = Depends(get_stores)):
    return ChatHistoryResponse(messages=chat_service.get_history(stores.chats, settings.demo_user_id))


@router.post("/chat/message", response_model=ChatResponse)
def send_chat_message(
    req: ChatRequest,
    stores: Stores = Depends(get_stores),
    llm: LLMClient = Depends(get_llm_client),
):
    """Send a message to the assistant; LLM failures come back as a canned apology."""
    reply = chat_service.send_message(
        settings.demo_user_id,
        req.message,
        profiles=stores.profiles,
        chats=stores.chats,
        llm=llm,
        settings=settings,
    )
    return ChatResponse(message=reply)
