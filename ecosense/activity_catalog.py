"""Static Hanoi activity catalog, scored against the current snapshot."""

from __future__ import annotations

from typing import List

from ecosense.domain import ActivityCatalogEntry, ActivityLocation, Coordinates, EnvironmentalSnapshot
from ecosense.models import UserProfile
from ecosense.recommendation_engine import activity_alert, compute_suitability_score


def _loc(name: str, address: str, description: str, lat: float, lng: float, best_times: List[str]) -> ActivityLocation:
    return ActivityLocation(
        name=name,
        address=address,
        description=description,
        coordinates=Coordinates(lat=lat, lng=lng),
        best_times=best_times,
    )


OUTDOOR_ACTIVITIES = (
    {
        "id": "walking",
        "name": "Walking & Strolling",
        "description": "Explore Hanoi's parks, lakes, and historic districts on foot.",
        "locations": [
            _loc("Hoan Kiem Lake", "Hang Trong, Hoan Kiem District",
                 "Scenic lake in the heart of Hanoi with pedestrian-friendly paths.",
                 21.0285, 105.8524, ["Early morning", "Late afternoon"]),
            _loc("West Lake Promenade", "Tay Ho District",
                 "Peaceful walking path around Hanoi's largest lake.",
                 21.0583, 105.8232, ["Sunset", "Early morning"]),
            _loc("Old Quarter", "Hoan Kiem District",
                 "Historic area with narrow streets and architecture.",
                 21.0345, 105.8499, ["Evening", "Early morning"]),
        ],
        "best_weather": ["Clear skies", "Mild temperatures", "Low humidity"],
        "worst_weather": ["Heavy rain", "Extreme heat", "High pollution"],
    },
    {
        "id": "cycling",
        "name": "Cycling",
        "description": "Ride around Hanoi's scenic routes and enjoy the urban landscape.",
        "locations": [
            _loc("West Lake Circuit", "Tay Ho District",
                 "17km cycling path around West Lake with beautiful views.",
                 21.0622, 105.8169, ["Early morning", "Late afternoon"]),
            _loc("Red River Dyke Road", "Long Bien District",
                 "Long, flat route with river views and rural scenery.",
                 21.0492, 105.8778, ["Morning", "Late afternoon"]),
        ],
        "best_weather": ["Clear skies", "Mild temperatures", "Low pollution"],
        "worst_weather": ["Rain", "High AQI", "Extreme heat"],
    },
    {
        "id": "parks",
        "name": "Parks & Gardens",
        "description": "Relax in Hanoi's green spaces and botanical gardens.",
        "locations": [
            _loc("Thong Nhat Park (Lenin Park)", "Hai Ba Trung District",
                 "Large park with lake, gardens, and walking paths.",
                 21.0124, 105.8419, ["Morning", "Late afternoon"]),
            _loc("Bach Thao Botanical Garden", "Ba Dinh District",
                 "Diverse collection of plants and trees in a peaceful setting.",
                 21.0359, 105.8348, ["Morning", "Afternoon"]),
        ],
        "best_weather": ["Clear skies", "Mild temperatures", "Low humidity"],
        "worst_weather": ["Heavy rain", "Thunderstorms", "High pollution"],
    },
)

# (entry, minimum sustainability_interest for the note, note)
INDOOR_ACTIVITIES = (
    (
        {
            "id": "museums",
            "name": "Museums & Galleries",
            "description": "Explore Hanoi's rich cultural and historical exhibits.",
            "locations": [
                _loc("Vietnam National Museum of History", "1 Trang Tien Street, Hoan Kiem District",
                     "Extensive collection of Vietnamese historical artifacts.",
                     21.0243, 105.8583, ["Weekday mornings", "Afternoons"]),
                _loc("Vietnam Fine Arts Museum", "66 Nguyen Thai Hoc Street, Ba Dinh District",
                     "Collection of traditional and contemporary Vietnamese art.",
                     21.0312, 105.8393, ["Afternoons", "Weekdays"]),
                _loc("Hanoi Museum", "Pham Hung Street, Nam Tu Liem District",
                     "Modern museum showcasing Hanoi's history and culture.",
                     21.0086, 105.7758, ["Morning", "Afternoon"]),
            ],
            "best_weather": ["Any weather", "Rainy days", "Hot days"],
            "worst_weather": ["None"],
        },
        4,
        "Many museums in Hanoi are implementing sustainable practices and exhibits on environmental awareness.",
    ),
    (
        {
            "id": "cafes",
            "name": "Traditional Cafés",
            "description": "Experience Hanoi's unique café culture and enjoy local beverages.",
            "locations": [
                _loc("Café Giang - Egg Coffee", "39 Nguyen Huu Huan Street, Hoan Kiem District",
                     "Famous for traditional Vietnamese egg coffee.",
                     21.0341, 105.8522, ["Morning", "Afternoon"]),
                _loc("Café Dinh", "13 Dinh Tien Hoang Street, Hoan Kiem District",
                     "Historic café serving traditional coffee in an authentic setting.",
                     21.0304, 105.8525, ["Morning", "Afternoon"]),
            ],
            "best_weather": ["Any weather", "Rainy days"],
            "worst_weather": ["None"],
        },
        3,
        "Many cafés in Hanoi are now using biodegradable straws and sustainable practices.",
    ),
    (
        {
            "id": "workshops",
            "name": "Cultural Workshops",
            "description": "Learn traditional Vietnamese crafts and culinary arts.",
            "locations": [
                _loc("Hanoi Cooking Centre", "44 Chau Long Street, Ba Dinh District",
                     "Cooking classes featuring traditional Vietnamese cuisine.",
                     21.0437, 105.8441, ["Morning classes", "Afternoon sessions"]),
                _loc("Vietnamese Craft Workshop", "23 Hang Bac Street, Hoan Kiem District",
                     "Learn traditional crafts like lacquerware and silk painting.",
                     21.0332, 105.8505, ["Afternoon", "Morning"]),
            ],
            "best_weather": ["Any weather"],
            "worst_weather": ["None"],
        },
        4,
        "Many workshops incorporate sustainable materials and traditional eco-friendly techniques.",
    ),
)


def outdoor_activities(snapshot: EnvironmentalSnapshot, profile: UserProfile | None = None) -> List[ActivityCatalogEntry]:
    """Outdoor catalog with a suitability score and caution line for the current hour."""
    alert = activity_alert(snapshot, profile)
    return [
        ActivityCatalogEntry(
            **entry,
            indoor=False,
            suitability_score=compute_suitability_score(snapshot, entry["id"], profile),
            current_alert=alert,
        )
        for entry in OUTDOOR_ACTIVITIES
    ]


def indoor_activities(profile: UserProfile | None = None) -> List[ActivityCatalogEntry]:
    """Indoor catalog; sustainability notes appear for users interested enough."""
    interest = profile.interests.sustainability_interest if profile and profile.interests else None
    return [
        ActivityCatalogEntry(
            **entry,
            indoor=True,
            personalized_note=note if interest is not None and interest >= min_interest else None,
        )
        for entry, min_interest, note in INDOOR_ACTIVITIES
    ]
