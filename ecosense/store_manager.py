"""Store manager facade over pluggable repository backends."""
from datetime import datetime, timedelta, timezone

import redis

from ecosense import config
from ecosense.models import PollOption
from ecosense.store import Stores, build_in_memory_stores, build_redis_stores
from utils.logging_utils import get_tagged_logger, mask_url

logger = get_tagged_logger(__name__, tag="store_manager")

DEMO_POLLS = (
    (
        "Which sustainable transportation method should Hanoi prioritize?",
        (("Expand the metro system", 42), ("More electric buses", 28),
         ("Bike-sharing programs", 18), ("Electric car infrastructure", 12)),
        7,
    ),
    (
        "What's your biggest challenge in adopting sustainable practices in Hanoi?",
        (("Higher cost of eco-friendly products", 35), ("Limited availability of sustainable options", 28),
         ("Lack of knowledge about what actually helps", 22), ("Inconvenience in daily routines", 15)),
        14,
    ),
)

DEMO_IDEAS = (
    ("EcoFriend",
     "Hanoi should implement a bike-sharing program similar to those in other major cities. This would reduce "
     "traffic congestion and air pollution while providing residents with a healthy transportation option.",
     datetime(2023, 7, 10, 8, 30, tzinfo=timezone.utc), 24, 5),
    ("GreenThumb",
     "We need more vertical gardens on buildings in downtown Hanoi. They would help reduce the urban heat island "
     "effect, improve air quality, and make the city more beautiful.",
     datetime(2023, 7, 15, 14, 45, tzinfo=timezone.utc), 18, 3),
    ("CleanCity",
     "Hanoi should introduce a plastic bag tax or ban at all retail stores. This has been successful in reducing "
     "plastic waste in many other cities around the world.",
     datetime(2023, 7, 18, 10, 20, tzinfo=timezone.utc), 32, 7),
)


def seed_demo_data(stores: Stores, now: datetime | None = None) -> None:
    """Add the demo polls and ideas to empty stores."""
    now = now or datetime.now(timezone.utc)
    if not stores.polls.list_polls():
        for question, options, days in DEMO_POLLS:
            stores.polls.insert_poll(
                question,
                [PollOption(text=text, votes=votes) for text, votes in options],
                expires_at=now + timedelta(days=days),
                created_at=now,
            )
        logger.info("Seeded demo polls", extra={"count": len(DEMO_POLLS)})
    if not stores.ideas.list_ideas():
        for author, content, created_at, likes, comments in DEMO_IDEAS:
            stores.ideas.insert_idea(author, content, created_at, likes=likes, comments=comments)
        logger.info("Seeded demo ideas", extra={"count": len(DEMO_IDEAS)})


def _init_stores(settings: config.Settings | None = None) -> Stores:
    """Initialize the backing stores based on configuration."""
    settings = settings or config.settings
    backend = (settings.store_backend or "memory").lower()
    logger.debug("Initializing stores", extra={"backend": backend})

    if backend == "redis":
        if not settings.redis_url:
            raise ValueError("redis_url must be set for the redis store backend")
        try:
            client = redis.Redis.from_url(settings.redis_url)
            client.ping()
            logger.info("Using Redis stores", extra={"redis_url": mask_url(settings.redis_url)})
            stores = build_redis_stores(client)
        except redis.exceptions.RedisError as exc:
            logger.warning("Falling back to in-memory stores (Redis unavailable)", extra={"error": str(exc)})
            stores = build_in_memory_stores()
    elif backend == "memory":
        stores = build_in_memory_stores()
    else:
        raise ValueError(f"Unknown store backend '{backend}'")

    if settings.seed_demo_data:
        seed_demo_data(stores)
    return stores


_stores: Stores = _init_stores()


def get_stores() -> Stores:
    """FastAPI dependency returning the process-wide stores."""
    return _stores


def use_in_memory_stores_for_tests(seed: bool = False) -> Stores:
    """Swap in fresh in-memory stores for test isolation."""
    global _stores
    _stores = build_in_memory_stores()
    if seed:
        seed_demo_data(_stores)
    return _stores
