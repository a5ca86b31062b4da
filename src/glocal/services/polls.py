# src/glocal/services/polls.py
"""Poll creation, anonymous voting, result tallies and vote history."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from glocal.core.settings import settings
from glocal.db.time import as_utc, utcnow
from glocal.models import Poll, PollOption, PollVote, PollVoteHistory
from glocal.schemas.poll import PollCreate
from glocal.services.pagination import clamp_limit
from glocal.services.poll_anonymity import (
    calculate_poll_results,
    derive_voting_token,
    is_poll_active,
    verify_voting_token,
)

logger = logging.getLogger(__name__)

MAX_OPTION_LENGTH = 200
VALID_INTERVALS = ("hourly", "daily")


class PollError(Exception):
    """Base class for poll service failures."""


class PollNotFoundError(PollError):
    """Raised when a poll does not exist."""


class PollValidationError(PollError):
    """Raised when poll creation data is rejected."""


class PollClosedError(PollError):
    """Raised when voting on a poll that has expired."""


class InvalidPollOptionError(PollError):
    """Raised when the chosen option does not belong to the poll."""


class DuplicateVoteError(PollError):
    """Raised when the voter has already voted on the poll."""


class InvalidIntervalError(PollError):
    """Raised when an analytics interval is neither hourly nor daily."""


def create_poll(
    db: Session,
    creator_id: str,
    poll_data: PollCreate,
    now: datetime | None = None,
) -> Poll:
    """Create a poll and its options.

    Raises:
        PollValidationError: If the question is blank, the option count is
            out of bounds, an option is blank or too long, or the expiry is
            not in the future.
    """
    question = poll_data.question.strip()
    if not question:
        raise PollValidationError("Poll question must not be blank")
    options = [text.strip() for text in poll_data.options]
    if not settings.poll_min_options <= len(options) <= settings.poll_max_options:
        raise PollValidationError(
            f"Polls need between {settings.poll_min_options} and "
            f"{settings.poll_max_options} options"
        )
    if any(not text for text in options):
        raise PollValidationError("Poll options must not be blank")
    if any(len(text) > MAX_OPTION_LENGTH for text in options):
        raise PollValidationError(
            f"Poll options must be at most {MAX_OPTION_LENGTH} characters"
        )
    if poll_data.expires_at is not None and not is_poll_active(poll_data.expires_at, now):
        raise PollValidationError("Expiry must be in the future")

    poll = Poll(
        question=question,
        created_by=creator_id,
        expires_at=poll_data.expires_at,
        options=[
            PollOption(text=text, position=position, vote_count=0)
            for position, text in enumerate(options)
        ],
    )
    db.add(poll)
    db.commit()
    db.refresh(poll)
    logger.info("Created poll %s with %d options", poll.id, len(options))
    return poll


def get_poll(db: Session, poll_id: str) -> Poll:
    """Return a poll by id.

    Raises:
        PollNotFoundError: If the poll does not exist.
    """
    poll = db.get(Poll, poll_id)
    if poll is None:
        raise PollNotFoundError(poll_id)
    return poll


def has_voted(db: Session, poll: Poll, user_id: str, secret: str) -> bool:
    """Return True if ``user_id`` already holds a vote on ``poll``."""
    token = derive_voting_token(user_id, poll.id, secret)
    stored = (
        db.query(PollVote.vote_hash)
        .filter(PollVote.poll_id == poll.id, PollVote.vote_hash == token)
        .scalar()
    )
    # Some collations match case-insensitively; confirm the exact token.
    return stored is not None and verify_voting_token(stored, user_id, poll.id, secret)


def cast_vote(
    db: Session,
    poll_id: str,
    option_id: str,
    user_id: str,
    secret: str,
    now: datetime | None = None,
) -> tuple[Poll, str]:
    """Record an anonymous vote.

    The vote row stores only the voting token. A second vote from the same
    user is rejected by the ``(poll_id, vote_hash)`` unique constraint, so
    concurrent submissions cannot both succeed.

    Returns:
        The refreshed poll and the voter's token.

    Raises:
        PollNotFoundError: If the poll does not exist.
        PollClosedError: If the poll has expired.
        InvalidPollOptionError: If the option is not part of the poll.
        DuplicateVoteError: If the user has already voted.
    """
    poll = get_poll(db, poll_id)
    if not is_poll_active(poll.expires_at, now):
        raise PollClosedError(poll.id)

    option = next((candidate for candidate in poll.options if candidate.id == option_id), None)
    if option is None:
        raise InvalidPollOptionError(option_id)

    token = derive_voting_token(user_id, poll.id, secret)
    try:
        with db.begin_nested():
            db.add(PollVote(poll_id=poll.id, option_id=option.id, vote_hash=token))
    except IntegrityError as err:
        raise DuplicateVoteError(poll.id) from err

    db.query(PollOption).filter(PollOption.id == option.id).update(
        {PollOption.vote_count: PollOption.vote_count + 1},
        synchronize_session=False,
    )
    db.query(Poll).filter(Poll.id == poll.id).update(
        {Poll.total_votes: Poll.total_votes + 1},
        synchronize_session=False,
    )
    db.commit()

    db.refresh(poll)
    for candidate in poll.options:
        db.refresh(candidate)
    return poll, token


def poll_results(poll: Poll) -> list[dict[str, Any]]:
    """Return the poll's options with vote counts and percentages."""
    return calculate_poll_results(
        {
            "id": option.id,
            "text": option.text,
            "position": option.position,
            "vote_count": option.vote_count,
        }
        for option in poll.options
    )


def _check_interval(interval_type: str) -> str:
    if interval_type not in VALID_INTERVALS:
        raise InvalidIntervalError(interval_type)
    return interval_type


def record_vote_snapshot(
    db: Session,
    poll_id: str,
    interval_type: str = "hourly",
    now: datetime | None = None,
) -> list[PollVoteHistory]:
    """Store the current vote count of every option on a poll.

    Counts come from the vote rows rather than the cached option tallies.
    Options without votes are recorded with a count of zero.

    Raises:
        InvalidIntervalError: If ``interval_type`` is not hourly or daily.
        PollNotFoundError: If the poll does not exist.
    """
    _check_interval(interval_type)
    poll = get_poll(db, poll_id)
    recorded_at = as_utc(now) if now is not None else utcnow()

    counts = dict(
        db.query(PollVote.option_id, func.count(PollVote.id))
        .filter(PollVote.poll_id == poll.id)
        .group_by(PollVote.option_id)
        .all()
    )
    snapshots = [
        PollVoteHistory(
            poll_id=poll.id,
            option_id=option.id,
            vote_count=counts.get(option.id, 0),
            recorded_at=recorded_at,
            interval_type=interval_type,
        )
        for option in poll.options
    ]
    db.add_all(snapshots)
    db.commit()
    logger.info(
        "Recorded %s vote snapshot for poll %s (%d options)",
        interval_type,
        poll.id,
        len(snapshots),
    )
    return snapshots


def poll_analytics(
    db: Session,
    poll_id: str,
    interval_type: str = "hourly",
    limit: int | None = None,
) -> dict[str, Any]:
    """Return per-option vote history for a poll.

    Each option carries its latest ``limit`` snapshots of the given interval,
    oldest first, alongside its current tally.

    Raises:
        InvalidIntervalError: If ``interval_type`` is not hourly or daily.
        PollNotFoundError: If the poll does not exist.
    """
    _check_interval(interval_type)
    poll = get_poll(db, poll_id)
    points = clamp_limit(
        limit,
        default=settings.poll_analytics_default_points,
        maximum=settings.poll_analytics_max_points,
    )

    options = []
    for option in poll.options:
        latest = (
            db.query(PollVoteHistory)
            .filter(
                PollVoteHistory.option_id == option.id,
                PollVoteHistory.interval_type == interval_type,
            )
            .order_by(PollVoteHistory.recorded_at.desc())
            .limit(points)
            .all()
        )
        options.append(
            {
                "option_id": option.id,
                "option_text": option.text,
                "current_vote_count": option.vote_count,
                "history": [
                    {"recorded_at": as_utc(row.recorded_at), "vote_count": row.vote_count}
                    for row in reversed(latest)
                ],
            }
        )

    return {"poll_id": poll.id, "interval_type": interval_type, "options": options}
