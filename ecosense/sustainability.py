"""Static sustainability content: rotating daily tip, local initiatives, community events."""

from __future__ import annotations

import datetime as dt
from typing import List

from pydantic import BaseModel


class Tip(BaseModel):
    title: str
    content: str
    icon: str


class LocalInitiative(BaseModel):
    title: str
    description: str
    icon: str


class CommunityEvent(BaseModel):
    title: str
    organizer: str
    description: str
    date: str
    time: str
    location: str
    participants: int
    user_joined: bool = False


class TipsResponse(BaseModel):
    daily_tip: Tip
    previous_tips: List[Tip]
    local_initiatives: List[LocalInitiative]


TIPS = (
    Tip(
        title="Energy Conservation",
        content="During Hanoi's hot season, set your air conditioner to 26°C to reduce energy consumption while staying comfortable.",
        icon="bolt",
    ),
    Tip(
        title="Reduce Plastic Waste",
        content="Bring reusable containers when buying street food in Hanoi to reduce single-use plastic waste.",
        icon="recycling",
    ),
    Tip(
        title="Water Conservation",
        content="Collect and reuse rainwater for plants during Hanoi's rainy season. A simple bucket under a downspout works well.",
        icon="water_drop",
    ),
    Tip(
        title="Sustainable Transportation",
        content="Use Hanoi's public bus system or consider an electric scooter to reduce your carbon footprint.",
        icon="directions_bus",
    ),
    Tip(
        title="Local Food Choices",
        content="Shop at local markets like Hom or Dong Xuan to support local farmers and reduce food miles.",
        icon="shopping_basket",
    ),
    Tip(
        title="Air Quality Protection",
        content="Grow air-purifying plants like peace lilies and spider plants inside your home to improve indoor air quality.",
        icon="spa",
    ),
    Tip(
        title="Energy Efficient Lighting",
        content="Switch to LED lights which use up to 75% less energy and last 25 times longer than incandescent lighting.",
        icon="lightbulb",
    ),
)

LOCAL_INITIATIVES = (
    LocalInitiative(
        title="Hanoi Plastic Reduction Program",
        description="Collection points for recyclable plastics at all major supermarkets throughout Hanoi.",
        icon="recycling",
    ),
    LocalInitiative(
        title="New Bus Routes",
        description="New bus routes connecting Ba Dinh to Tay Ho - reduce your carbon footprint by 60%.",
        icon="directions_bus",
    ),
    LocalInitiative(
        title="Community Garden Initiative",
        description="Community garden initiative in Cau Giay district - volunteers welcome this Saturday.",
        icon="park",
    ),
)

COMMUNITY_EVENTS = (
    CommunityEvent(
        title="Hanoi River Cleanup",
        organizer="Clean Hanoi Initiative",
        description="Join us for a community cleanup along the Red River banks. Equipment and refreshments provided.",
        date="July 24, 2023",
        time="8:00 AM - 12:00 PM",
        location="Red River Banks, Long Bien District",
        participants=45,
    ),
    CommunityEvent(
        title="Urban Gardening Workshop",
        organizer="Green Thumbs Hanoi",
        description="Learn how to grow your own vegetables in limited space using sustainable methods.",
        date="July 30, 2023",
        time="2:00 PM - 4:30 PM",
        location="Tay Ho Community Center",
        participants=28,
    ),
    CommunityEvent(
        title="Eco-Friendly Market",
        organizer="Sustainable Hanoi Network",
        description="Shop from local vendors offering eco-friendly products and learn about sustainable living.",
        date="August 5-6, 2023",
        time="9:00 AM - 5:00 PM",
        location="Hang Da Market, Hoan Kiem District",
        participants=120,
    ),
)

PREVIOUS_TIP_COUNT = 3


def daily_tip(today: dt.date | None = None) -> Tip:
    """Tip of the day, rotating through TIPS by day of year (1 January is day 1)."""
    today = today or dt.date.today()
    return TIPS[today.timetuple().tm_yday % len(TIPS)]


def tips_for(today: dt.date | None = None) -> TipsResponse:
    tip = daily_tip(today)
    previous = [t for t in TIPS if t.title != tip.title][:PREVIOUS_TIP_COUNT]
    return TipsResponse(daily_tip=tip, previous_tips=previous, local_initiatives=list(LOCAL_INITIATIVES))


def community_events() -> List[CommunityEvent]:
    return list(COMMUNITY_EVENTS)
