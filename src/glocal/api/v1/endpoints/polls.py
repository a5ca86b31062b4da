# src/glocal/api/v1/endpoints/polls.py
"""Poll endpoints for the Glocal API."""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from glocal.api.v1.dependencies import (
    CurrentUserDep,
    SessionDep,
    VotingSecretDep,
    enforce_rate_limit,
)
from glocal.core.route_logging import get_route_logger
from glocal.db.time import as_utc, utcnow
from glocal.models import Poll
from glocal.schemas.poll import (
    PollAnalyticsResponse,
    PollCreate,
    PollOptionResult,
    PollResponse,
    PollResultsResponse,
    PollSnapshotRequest,
    PollSnapshotResponse,
    PollVoteCreate,
    PollVoteReceipt,
)
from glocal.services import polls as poll_service
from glocal.services.poll_anonymity import derive_anonymous_voter_id, is_poll_active
from glocal.services.polls import (
    DuplicateVoteError,
    InvalidIntervalError,
    InvalidPollOptionError,
    PollClosedError,
    PollNotFoundError,
    PollValidationError,
)

router = APIRouter(
    prefix="/polls",
    tags=["polls"],
    dependencies=[Depends(enforce_rate_limit)],
)


def _option_results(poll: Poll) -> list[PollOptionResult]:
    return [PollOptionResult(**row) for row in poll_service.poll_results(poll)]


def _poll_response(poll: Poll, *, has_voted: bool) -> PollResponse:
    return PollResponse(
        id=poll.id,
        question=poll.question,
        created_by=poll.created_by,
        created_at=poll.created_at,
        expires_at=poll.expires_at,
        total_votes=poll.total_votes,
        is_active=is_poll_active(poll.expires_at),
        has_voted=has_voted,
        options=_option_results(poll),
    )


def _get_poll_or_404(db: Session, poll_id: str) -> Poll:
    try:
        return poll_service.get_poll(db, poll_id)
    except PollNotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Poll not found") from err


@router.post("", response_model=PollResponse, status_code=status.HTTP_201_CREATED)
async def create_poll(
    poll_data: PollCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PollResponse:
    """Create a poll with between the configured minimum and maximum options."""
    try:
        poll = poll_service.create_poll(db, current_user.id, poll_data)
    except PollValidationError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    return _poll_response(poll, has_voted=False)


@router.get("/{poll_id}", response_model=PollResponse)
async def get_poll(
    poll_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    secret: VotingSecretDep,
) -> PollResponse:
    """Return a poll with current results and whether the caller has voted."""
    poll = _get_poll_or_404(db, poll_id)
    voted = poll_service.has_voted(db, poll, current_user.id, secret)
    return _poll_response(poll, has_voted=voted)


@router.get("/{poll_id}/results", response_model=PollResultsResponse)
async def get_poll_results(
    poll_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> PollResultsResponse:
    """Return vote counts and percentages for each option."""
    poll = _get_poll_or_404(db, poll_id)
    return PollResultsResponse(
        poll_id=poll.id,
        total_votes=poll.total_votes,
        options=_option_results(poll),
    )


@router.post(
    "/{poll_id}/vote",
    response_model=PollVoteReceipt,
    status_code=status.HTTP_201_CREATED,
)
async def vote_on_poll(
    poll_id: str,
    vote_data: PollVoteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    secret: VotingSecretDep,
) -> PollVoteReceipt:
    """Cast an anonymous vote.

    The stored vote holds only a keyed hash of the voter and poll, so the
    tally can reject a second vote without recording who voted.
    """
    logger = get_route_logger("POST", "/polls/{poll_id}/vote")
    try:
        poll, token = poll_service.cast_vote(
            db,
            poll_id,
            vote_data.option_id,
            current_user.id,
            secret,
        )
    except PollNotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Poll not found") from err
    except PollClosedError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This poll has expired",
        ) from err
    except InvalidPollOptionError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Option does not belong to this poll",
        ) from err
    except DuplicateVoteError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You have already voted on this poll",
        ) from err

    logger.info("Recorded vote on poll %s", poll.id)
    return PollVoteReceipt(
        poll_id=poll.id,
        anonymous_voter_id=derive_anonymous_voter_id(token),
        total_votes=poll.total_votes,
        options=_option_results(poll),
    )


_INVALID_INTERVAL = 'Invalid interval type. Must be "hourly" or "daily"'


@router.get("/{poll_id}/analytics", response_model=PollAnalyticsResponse)
async def get_poll_analytics(
    poll_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    interval: str = "hourly",
    limit: int | None = None,
) -> PollAnalyticsResponse:
    """Return per-option vote history for charting poll trends."""
    try:
        analytics = poll_service.poll_analytics(db, poll_id, interval, limit)
    except InvalidIntervalError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_INVALID_INTERVAL,
        ) from err
    except PollNotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Poll not found") from err
    return PollAnalyticsResponse(**analytics)


@router.post(
    "/{poll_id}/analytics",
    response_model=PollSnapshotResponse,
    status_code=status.HTTP_201_CREATED,
)
async def record_poll_snapshot(
    poll_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    snapshot: PollSnapshotRequest | None = None,
) -> PollSnapshotResponse:
    """Record the current vote count of every option."""
    logger = get_route_logger("POST", "/polls/{poll_id}/analytics")
    interval = snapshot.interval if snapshot is not None else "hourly"
    try:
        rows = poll_service.record_vote_snapshot(db, poll_id, interval)
    except InvalidIntervalError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_INVALID_INTERVAL,
        ) from err
    except PollNotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Poll not found") from err

    logger.info("Recorded %s snapshot for poll %s", interval, poll_id)
    return PollSnapshotResponse(
        success=True,
        message="Vote snapshot recorded successfully",
        poll_id=poll_id,
        interval_type=interval,
        recorded_at=as_utc(rows[0].recorded_at) if rows else utcnow(),
        snapshot_count=len(rows),
    )
