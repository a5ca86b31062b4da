# src/glocal/services/notifications.py
"""Notification feed, read-state and delivery services."""

from __future__ import annotations

import logging
import re
from datetime import datetime, time, timedelta
from typing import Any, Final
from urllib.parse import urlsplit
from zoneinfo import ZoneInfo

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from glocal.core.settings import settings
from glocal.db.time import as_utc, utcnow
from glocal.models import Notification, NotificationPreferences
from glocal.schemas.notification import NotificationPreferencesUpdate, NotificationResponse
from glocal.services.pagination import (
    CursorPage,
    StatusFilter,
    build_page,
    clamp_limit,
    decode_cursor,
)

# Configure logger for this module
logger = logging.getLogger(__name__)

# Delivered even during a user's quiet hours.
CRITICAL_NOTIFICATION_TYPES: Final[frozenset[str]] = frozenset(
    {
        "event_reminder",
        "subscription_reminder",
        "subscription_update",
        "subscription_expired",
    }
)

_PREFERENCE_FOR_TYPE: Final[dict[str, str]] = {
    "comment_on_post": "comments_on_post",
    "comment_reply": "comment_replies",
    "post_upvote": "post_votes",
    "poll_upvote": "poll_votes",
    "comment_upvote": "comment_votes",
    "booking_update": "bookings",
    "booking_request": "booking_requests",
    "community_invite": "community_invites",
    "artist_response": "artist_responses",
    "event_reminder": "event_reminders",
    "direct_message": "direct_messages",
    "booking_message": "booking_messages",
    "mention": "mentions",
    "moderation_action": "moderation_actions",
    "content_reported": "moderation_actions",
}

_UPVOTE_SUBJECTS: Final[dict[str, str]] = {
    "post_upvote": "post",
    "poll_upvote": "poll",
    "comment_upvote": "comment",
}

_UNSAFE_SCHEME = re.compile(r"^(javascript|data|vbscript|file):", re.IGNORECASE)


class NotificationError(Exception):
    """Base class for notification service failures."""


class NotificationNotFoundError(NotificationError):
    """Raised when a notification does not exist or belongs to another user."""


# --- Feed -------------------------------------------------------------------------


def list_notifications(
    db: Session,
    user_id: str,
    *,
    status_filter: StatusFilter = StatusFilter.ALL,
    limit: int | None = None,
    cursor: str | None = None,
) -> CursorPage[NotificationResponse]:
    """Return one page of a user's notifications, newest first.

    Args:
        db: Database session
        user_id: Owner of the feed
        status_filter: Restrict to read or unread notifications
        limit: Requested page size; clamped into the configured bounds
        cursor: Opaque token from a previous page; ignored if malformed

    Returns:
        A page of allow-listed notification projections.
    """
    page_size = clamp_limit(
        limit,
        default=settings.notifications_page_size,
        maximum=settings.notifications_max_page_size,
    )
    position = decode_cursor(cursor)

    query = db.query(Notification).filter(Notification.user_id == user_id)
    if status_filter is StatusFilter.UNREAD:
        query = query.filter(Notification.is_read.is_(False))
    elif status_filter is StatusFilter.READ:
        query = query.filter(Notification.is_read.is_(True))

    if position is not None:
        query = query.filter(
            or_(
                Notification.created_at < position.created_at,
                and_(
                    Notification.created_at == position.created_at,
                    Notification.id < str(position.id),
                ),
            )
        )

    # One extra row tells us whether another page exists.
    rows = (
        query.order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(page_size + 1)
        .all()
    )

    page = build_page(rows, limit=page_size, cursor=position, status_filter=status_filter)
    return CursorPage(
        items=[NotificationResponse.model_validate(row) for row in page.items],
        has_more=page.has_more,
        next_cursor=page.next_cursor,
    )


def count_unread(db: Session, user_id: str) -> int:
    """Return the number of unread notifications for a user."""
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


# --- Read state -------------------------------------------------------------------


def mark_all_read_before(db: Session, user_id: str, cutoff: datetime) -> list[str]:
    """Mark every unread notification created at or before ``cutoff`` as read.

    Notifications that arrive while the update runs are newer than the cutoff
    and stay unread.

    Returns:
        Identifiers of the notifications that were updated.
    """
    updated_ids = [
        row_id
        for (row_id,) in db.query(Notification.id)
        .filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
            Notification.created_at <= as_utc(cutoff),
        )
        .with_for_update()
        .all()
    ]
    if updated_ids:
        db.query(Notification).filter(
            Notification.id.in_(updated_ids),
            Notification.is_read.is_(False),
        ).update(
            {Notification.is_read: True, Notification.read_at: utcnow()},
            synchronize_session="fetch",
        )
    db.commit()
    return updated_ids


def mark_read(db: Session, user_id: str, notification_id: str) -> Notification:
    """Mark a single notification as read.

    Raises:
        NotificationNotFoundError: If no such notification belongs to ``user_id``.
    """
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        raise NotificationNotFoundError(notification_id)

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
    return notification


# --- Preferences ------------------------------------------------------------------


def get_or_create_preferences(db: Session, user_id: str) -> NotificationPreferences:
    """Return a user's preferences, creating the default row on first access."""
    preferences = db.get(NotificationPreferences, user_id)
    if preferences is None:
        preferences = NotificationPreferences(user_id=user_id)
        db.add(preferences)
        db.commit()
        db.refresh(preferences)
    return preferences


def update_preferences(
    db: Session,
    user_id: str,
    changes: NotificationPreferencesUpdate,
) -> NotificationPreferences:
    """Apply the fields present in ``changes`` to a user's preferences."""
    preferences = get_or_create_preferences(db, user_id)
    for field_name, value in changes.model_dump(exclude_none=True).items():
        setattr(preferences, field_name, value)
    preferences.updated_at = utcnow()
    db.commit()
    db.refresh(preferences)
    return preferences


def in_quiet_hours(preferences: NotificationPreferences, now: datetime | None = None) -> bool:
    """Return True if ``now`` falls inside the user's quiet hours."""
    if not preferences.quiet_hours_enabled:
        return False
    zone = ZoneInfo(preferences.quiet_hours_timezone)
    current = as_utc(now or utcnow()).astimezone(zone).time()
    start = time.fromisoformat(preferences.quiet_hours_start)
    end = time.fromisoformat(preferences.quiet_hours_end)
    if start > end:
        # Window spans midnight, e.g. 22:00 to 08:00.
        return current >= start or current < end
    return start <= current < end


def should_send_notification(
    db: Session,
    user_id: str,
    notification_type: str,
    now: datetime | None = None,
) -> bool:
    """Check a user's preferences and quiet hours for a notification type."""
    preferences = get_or_create_preferences(db, user_id)
    if (
        notification_type not in CRITICAL_NOTIFICATION_TYPES
        and in_quiet_hours(preferences, now)
    ):
        return False

    column = _PREFERENCE_FOR_TYPE.get(notification_type)
    if column is None:
        return True
    return bool(getattr(preferences, column))


# --- Creation ---------------------------------------------------------------------


def _batched_copy(notification_type: str, title: str, count: int) -> tuple[str, str]:
    subject = _UPVOTE_SUBJECTS.get(notification_type)
    if subject is not None:
        summary = f"{count} users upvoted your {subject}"
        return summary, summary
    return title, f"{count} new {notification_type} notifications"


def create_notification(
    db: Session,
    *,
    user_id: str,
    notification_type: str,
    title: str,
    message: str,
    link: str | None = None,
    actor_id: str | None = None,
    entity_id: str | None = None,
    entity_type: str | None = None,
    data: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> Notification | None:
    """Create a notification, or fold it into a recent one on the same entity.

    Unread notifications sharing ``user_id``, type and entity within the
    batching window are merged: the count grows and the row moves to the top
    of the feed.

    Returns:
        The created or updated notification, or None when nothing is sent
        (self-notification, or suppressed by preferences).
    """
    if actor_id is not None and actor_id == user_id:
        return None

    current = as_utc(now) if now is not None else utcnow()
    if not should_send_notification(db, user_id, notification_type, current):
        logger.debug("Notification of type %s suppressed by preferences", notification_type)
        return None

    batch_key = f"{user_id}:{notification_type}:{entity_id or ''}"
    window_start = current - timedelta(seconds=settings.notification_batch_window_seconds)
    existing = (
        db.query(Notification)
        .filter(
            Notification.batch_key == batch_key,
            Notification.is_read.is_(False),
            Notification.created_at > window_start,
        )
        .order_by(Notification.created_at.desc())
        .first()
    )

    if existing is not None:
        existing.batch_count += 1
        existing.title, existing.message = _batched_copy(
            notification_type, title, existing.batch_count
        )
        existing.actor_id = actor_id
        existing.created_at = current
        db.commit()
        db.refresh(existing)
        logger.info("Batched notification %s (count=%d)", existing.id, existing.batch_count)
        return existing

    notification = Notification(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        link=normalize_notification_link(link),
        actor_id=actor_id,
        entity_id=entity_id,
        entity_type=entity_type,
        batch_key=batch_key,
        batch_count=1,
        data=data,
        created_at=current,
    )
    db.add(notification)
    db.commit()
    db.refresh(notification)
    return notification


def get_notification_message(
    notification_type: str,
    context: dict[str, Any],
) -> tuple[str, str]:
    """Return the ``(title, message)`` pair for a notification type."""
    actor = context.get("actorName")

    if notification_type == "comment_on_post":
        return "New comment on your post", f'{actor} commented on "{context.get("postTitle")}"'
    if notification_type == "comment_reply":
        return "Reply to your comment", f"{actor} replied to your comment"
    if notification_type == "post_upvote":
        return "Your post was upvoted", f'{actor} upvoted your post "{context.get("postTitle")}"'
    if notification_type == "comment_upvote":
        return "Your comment was upvoted", f"{actor} upvoted your comment"
    if notification_type == "booking_update":
        return (
            "Booking status updated",
            f"Your booking with {context.get('artistName')} has been {context.get('status')}",
        )
    if notification_type == "community_invite":
        return (
            "Community invitation",
            f"You've been invited to join {context.get('communityName')}",
        )
    if notification_type == "artist_response":
        return (
            "Artist response",
            f"{context.get('artistName')} sent you a message about your booking",
        )
    if notification_type == "event_reminder":
        return "Event reminder", f"{context.get('eventName')} is happening {context.get('when')}"
    if notification_type == "community_role_change":
        return (
            "Your community role changed",
            f"You are now {context.get('newRole')} in {context.get('communityName')}",
        )
    if notification_type in {"direct_message", "booking_message"}:
        unread = context.get("unreadCount")
        unread = unread if isinstance(unread, int) else 1
        if notification_type == "direct_message":
            if unread > 1:
                return f"{unread} new messages", f"{actor} sent you {unread} messages"
            return "New message", f"{actor}: {context.get('messagePreview')}"
        if unread > 1:
            return (
                f"{unread} new booking messages",
                f"{actor} sent {unread} messages about your booking",
            )
        return "New booking message", f"{actor}: {context.get('messagePreview')}"
    if notification_type == "booking_request":
        return "New booking request", f"{actor} requested a booking with you"
    if notification_type == "mention":
        post_title = context.get("postTitle") or "a post"
        return "You were mentioned", f'{actor} mentioned you in "{post_title}"'
    if notification_type == "moderation_action":
        action = context.get("action")
        if action:
            return "Moderation action", f"Your content was {action}"
        return "Moderation action", "A moderation action was taken on your content"
    return "New notification", "You have a new notification"


# --- Links ------------------------------------------------------------------------


def _is_site_host(hostname: str | None) -> bool:
    if not hostname:
        return False
    domain = settings.site_domain.lower()
    hostname = hostname.lower()
    return hostname == domain or hostname.endswith(f".{domain}")


def is_valid_notification_link(link: str | None) -> bool:
    """Return True for internal paths and http(s) URLs on the site domain."""
    if not link or not isinstance(link, str):
        return False

    if link.startswith("/"):
        return "://" not in link and not link.startswith("//")
    if _UNSAFE_SCHEME.match(link):
        return False

    parts = urlsplit(link)
    return parts.scheme in {"http", "https"} and _is_site_host(parts.hostname)


def normalize_notification_link(link: str | None) -> str | None:
    """Return a relative path for a safe link, or None if it cannot be trusted."""
    if link is None or not is_valid_notification_link(link):
        return None
    if link.startswith("/"):
        return link

    parts = urlsplit(link)
    normalised = parts.path or "/"
    if parts.query:
        normalised += f"?{parts.query}"
    if parts.fragment:
        normalised += f"#{parts.fragment}"
    return normalised
