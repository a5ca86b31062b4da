"""Poll-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class PollCreate(BaseModel):
    """Schema for creating a new poll."""

    question: str = Field(..., min_length=1, max_length=500, description="Poll question")
    options: list[str] = Field(..., description="Option texts in display order")
    expires_at: datetime | None = Field(None, description="Closing time; omit for no expiry")


class PollVoteCreate(BaseModel):
    """Schema for casting a vote."""

    option_id: str = Field(..., min_length=1)


class PollOptionResult(BaseModel):
    """An option with its current tally."""

    id: str
    text: str
    position: int
    vote_count: int
    percentage: int


class PollResponse(BaseModel):
    """Poll details as seen by the current user."""

    id: str
    question: str
    created_by: str | None
    created_at: datetime
    expires_at: datetime | None
    total_votes: int
    is_active: bool
    has_voted: bool
    options: list[PollOptionResult]


class PollResultsResponse(BaseModel):
    poll_id: str
    total_votes: int
    options: list[PollOptionResult]


class PollVoteReceipt(BaseModel):
    """Returned after a successful vote.

    ``anonymous_voter_id`` is a display number derived from the voting token;
    it cannot be traced back to the voter.
    """

    poll_id: str
    anonymous_voter_id: int
    total_votes: int
    options: list[PollOptionResult]


class PollVoteHistoryPoint(BaseModel):
    recorded_at: datetime
    vote_count: int


class PollOptionAnalytics(BaseModel):
    """Vote history for one option, oldest snapshot first."""

    option_id: str
    option_text: str
    current_vote_count: int
    history: list[PollVoteHistoryPoint]


class PollAnalyticsResponse(BaseModel):
    poll_id: str
    interval_type: str
    options: list[PollOptionAnalytics]


class PollSnapshotRequest(BaseModel):
    """Body for recording a vote snapshot; defaults to an hourly snapshot."""

    interval: str = Field("hourly", description="Either 'hourly' or 'daily'")


class PollSnapshotResponse(BaseModel):
    success: bool
    message: str
    poll_id: str
    interval_type: str
    recorded_at: datetime
    snapshot_count: int
