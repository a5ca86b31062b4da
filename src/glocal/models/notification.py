# src/glocal/models/notification.py
"""Models for in-app notifications and per-user delivery preferences."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, validates

from glocal.db.session import Base
from glocal.db.time import utcnow


class Notification(Base):
    """A notification addressed to a single user.

    Feeds are ordered by ``(created_at DESC, id DESC)``; ``id`` breaks ties
    between rows sharing a timestamp.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_created_id", "user_id", "created_at", "id"),
        Index("ix_notifications_batch_key", "batch_key", "created_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    entity_type: Mapped[str | None] = mapped_column(String(64), nullable=True)

    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Rapid notifications of the same type on the same entity collapse into one row.
    batch_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    batch_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    data: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Internal bookkeeping; never part of an API response.
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    @validates("id")
    def _canonical_id(self, key: str, value: str | uuid.UUID) -> str:
        # Keyset tie-breaks compare ids as text, so store one spelling only.
        return str(uuid.UUID(str(value)))


class NotificationPreferences(Base):
    """Per-user switches controlling which notifications are delivered."""

    __tablename__ = "notification_preferences"

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )

    comments_on_post: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    comment_replies: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    post_votes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    poll_votes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    comment_votes: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    bookings: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    booking_requests: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    community_invites: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    artist_responses: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    event_reminders: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    direct_messages: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    booking_messages: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    mentions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    moderation_actions: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    email_digest_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_digest_frequency: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="weekly",
    )

    # Quiet hours are local wall-clock times in ``quiet_hours_timezone``.
    quiet_hours_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    quiet_hours_start: Mapped[str] = mapped_column(String(8), nullable=False, default="22:00:00")
    quiet_hours_end: Mapped[str] = mapped_column(String(8), nullable=False, default="08:00:00")
    quiet_hours_timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
