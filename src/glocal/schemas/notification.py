"""Notification-related Pydantic schemas."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

_TIME_PATTERN = re.compile(r"^([0-1][0-9]|2[0-3]):[0-5][0-9]:[0-5][0-9]$")


class NotificationResponse(BaseModel):
    """Fields of a notification that may be returned to its owner."""

    id: str
    user_id: str
    type: str
    title: str
    message: str
    link: str | None = None
    actor_id: str | None = None
    entity_id: str | None = None
    entity_type: str | None = None
    is_read: bool
    created_at: datetime
    read_at: datetime | None = None
    expires_at: datetime | None = None
    batch_key: str | None = None
    batch_count: int = 1
    data: dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)


class PageInfo(BaseModel):
    """Pagination metadata for a notification page."""

    has_more: bool
    next_cursor: str | None
    limit: int
    filter: str


class NotificationListResponse(BaseModel):
    """A page of notifications plus the information needed to fetch the next."""

    notifications: list[NotificationResponse]
    page_info: PageInfo


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    """Result of marking every notification up to a cutoff as read."""

    success: bool = True
    updated_count: int
    cutoff_time: datetime


class NotificationPreferencesResponse(BaseModel):
    """Stored notification preferences for the current user."""

    comments_on_post: bool
    comment_replies: bool
    post_votes: bool
    poll_votes: bool
    comment_votes: bool
    bookings: bool
    booking_requests: bool
    community_invites: bool
    artist_responses: bool
    event_reminders: bool
    direct_messages: bool
    booking_messages: bool
    mentions: bool
    moderation_actions: bool
    email_digest_enabled: bool
    email_digest_frequency: str
    quiet_hours_enabled: bool
    quiet_hours_start: str
    quiet_hours_end: str
    quiet_hours_timezone: str
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationPreferencesUpdate(BaseModel):
    """Partial update of notification preferences; omitted fields are left alone."""

    comments_on_post: bool | None = None
    comment_replies: bool | None = None
    post_votes: bool | None = None
    poll_votes: bool | None = None
    comment_votes: bool | None = None
    bookings: bool | None = None
    booking_requests: bool | None = None
    community_invites: bool | None = None
    artist_responses: bool | None = None
    event_reminders: bool | None = None
    direct_messages: bool | None = None
    booking_messages: bool | None = None
    mentions: bool | None = None
    moderation_actions: bool | None = None
    email_digest_enabled: bool | None = None
    email_digest_frequency: Literal["daily", "weekly", "never"] | None = None
    quiet_hours_enabled: bool | None = None
    quiet_hours_start: str | None = Field(None, description="HH:MM:SS, 24-hour clock")
    quiet_hours_end: str | None = Field(None, description="HH:MM:SS, 24-hour clock")
    quiet_hours_timezone: str | None = Field(None, description="IANA timezone name")

    model_config = ConfigDict(extra="ignore")

    @field_validator("quiet_hours_start", "quiet_hours_end")
    @classmethod
    def _check_time(cls, value: str | None) -> str | None:
        if value is not None and not _TIME_PATTERN.match(value):
            raise ValueError("Invalid time format. Use HH:MM:SS (24-hour format)")
        return value

    @field_validator("quiet_hours_timezone")
    @classmethod
    def _check_timezone(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as err:
            raise ValueError(f"Unknown timezone: {value}") from err
        return value
