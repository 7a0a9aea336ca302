"""Poll and idea rules shared by every store backend: input validation, tallies, per-user voting."""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from ecosense.errors import DuplicateVoteError, NotFoundError, ValidationError
from ecosense.models import Poll, PollOptionView, PollView
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="poll_service")

DEFAULT_POLL_DURATION_DAYS = 7
MIN_POLL_OPTIONS = 2


def validate_poll_input(
    question: str | None,
    options: Sequence[str] | None,
    duration_days: int | None = None,
) -> Tuple[str, List[str], int]:
    """Return the cleaned (question, options, duration_days) or raise ValidationError."""
    question = (question or "").strip()
    if not question:
        raise ValidationError("Poll question must not be empty")

    cleaned = [str(o).strip() for o in (options or [])]
    if len(cleaned) < MIN_POLL_OPTIONS:
        raise ValidationError(f"A poll needs at least {MIN_POLL_OPTIONS} options")
    if any(not o for o in cleaned):
        raise ValidationError("Poll options must not be empty")

    if duration_days is None:
        duration_days = DEFAULT_POLL_DURATION_DAYS
    if duration_days < 1:
        raise ValidationError("Poll duration must be at least 1 day")
    return question, cleaned, duration_days


def validate_option_index(poll: Poll, option_index: int) -> None:
    if not 0 <= option_index < len(poll.options):
        raise ValidationError(f"Invalid option index {option_index} for poll {poll.id}")


def validate_idea_content(content: str | None) -> str:
    content = (content or "").strip()
    if not content:
        raise ValidationError("Idea content must not be empty")
    return content


def _percentage(votes: int, total: int) -> int:
    """Share of `total` as a whole percent, rounding halves up; 0 when nobody voted."""
    if total <= 0:
        return 0
    return int(math.floor(votes / total * 100 + 0.5))


def tally(poll: Poll, user_vote_index: int | None = None) -> PollView:
    """Recompute percentages from the raw vote counts."""
    total = sum(o.votes for o in poll.options)
    return PollView(
        id=poll.id,
        question=poll.question,
        options=[PollOptionView(text=o.text, votes=o.votes, percentage=_percentage(o.votes, total)) for o in poll.options],
        total_votes=total,
        expires_at=poll.expires_at,
        created_at=poll.created_at,
        user_voted=user_vote_index is not None,
        user_vote_index=user_vote_index,
    )


def list_poll_views(polls, user_id: int) -> List[PollView]:
    """All polls as seen by `user_id`."""
    return [tally(p, polls.user_vote(p.id, user_id)) for p in polls.list_polls()]


def cast_vote(polls, poll_id: int, option_index: int, user_id: int, *, allow_repeat: bool = False) -> PollView:
    """Record `user_id`'s vote and increment the option count.

    Raises NotFoundError for an unknown poll, ValidationError for a bad index and
    DuplicateVoteError when the user already voted (unless repeats are allowed).
    """
    poll = polls.get_poll(poll_id)
    if poll is None:
        raise NotFoundError(f"Poll {poll_id} not found")
    validate_option_index(poll, option_index)

    if not polls.record_vote(poll_id, user_id, option_index, overwrite=allow_repeat):
        logger.info("Rejected repeat vote", extra={"poll_id": poll_id, "user_id": user_id})
        raise DuplicateVoteError(f"User {user_id} already voted on poll {poll_id}")

    updated = polls.vote(poll_id, option_index)
    logger.info("Vote recorded", extra={"poll_id": poll_id, "option_index": option_index})
    return tally(updated, option_index)
