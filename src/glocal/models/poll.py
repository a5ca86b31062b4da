# src/glocal/models/poll.py
"""Models for community polls and their anonymous votes."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from glocal.db.session import Base
from glocal.db.time import utcnow


class Poll(Base):
    """A question put to a community with a fixed set of options."""

    __tablename__ = "polls"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    question: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    # NULL means the poll never closes.
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    options: Mapped[list[PollOption]] = relationship(
        "PollOption",
        back_populates="poll",
        cascade="all, delete-orphan",
        order_by="PollOption.position",
    )


class PollOption(Base):
    """One selectable answer on a poll."""

    __tablename__ = "poll_options"
    __table_args__ = (
        CheckConstraint("vote_count >= 0", name="ck_poll_options_vote_count"),
        UniqueConstraint("poll_id", "position", name="uq_poll_options_position"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    poll_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("polls.id", ondelete="CASCADE"),
        nullable=False,
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    poll: Mapped[Poll] = relationship("Poll", back_populates="options")


class PollVote(Base):
    """An anonymous vote.

    Votes carry no user column. ``vote_hash`` is a keyed hash of the voter
    and poll; the unique constraint on ``(poll_id, vote_hash)`` enforces one
    vote per user per poll.
    """

    __tablename__ = "poll_votes"
    __table_args__ = (
        UniqueConstraint("poll_id", "vote_hash", name="uq_poll_votes_poll_hash"),
        Index("ix_poll_votes_option_id", "option_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    poll_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("polls.id", ondelete="CASCADE"),
        nullable=False,
    )
    option_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("poll_options.id", ondelete="CASCADE"),
        nullable=False,
    )
    vote_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class PollVoteHistory(Base):
    """A point-in-time vote count for one option, used for trend charts."""

    __tablename__ = "poll_vote_history"
    __table_args__ = (
        CheckConstraint(
            "interval_type IN ('hourly', 'daily')",
            name="ck_poll_vote_history_interval",
        ),
        Index("ix_poll_vote_history_poll_recorded", "poll_id", "recorded_at"),
        Index("ix_poll_vote_history_option_recorded", "option_id", "recorded_at"),
        Index(
            "ix_poll_vote_history_poll_interval_recorded",
            "poll_id",
            "interval_type",
            "recorded_at",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    poll_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("polls.id", ondelete="CASCADE"),
        nullable=False,
    )
    option_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("poll_options.id", ondelete="CASCADE"),
        nullable=False,
    )
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    interval_type: Mapped[str] = mapped_column(String(10), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
