# mypy: ignore-errors
# tests/test_notification_service.py
"""Tests for notification creation, batching, preferences and read state."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from glocal.db.time import as_utc
from glocal.models import Notification, NotificationPreferences
from glocal.schemas.notification import NotificationPreferencesUpdate
from glocal.services import notifications as notification_service
from glocal.services.notifications import NotificationNotFoundError
from glocal.services.pagination import StatusFilter

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


def _set_preferences(db_session, user, **fields) -> NotificationPreferences:
    return notification_service.update_preferences(
        db_session, user.id, NotificationPreferencesUpdate(**fields)
    )


def test_create_notification_persists_row(db_session, test_user, other_user) -> None:
    notification = notification_service.create_notification(
        db_session,
        user_id=test_user.id,
        notification_type="comment_on_post",
        title="New comment on your post",
        message="Other commented",
        link="/posts/1",
        actor_id=other_user.id,
        entity_id="post-1",
        entity_type="post",
        now=NOW,
    )

    assert notification is not None
    assert notification.batch_key == f"{test_user.id}:comment_on_post:post-1"
    assert notification.batch_count == 1
    assert notification.link == "/posts/1"
    assert as_utc(notification.created_at) == NOW


def test_self_notifications_are_skipped(db_session, test_user) -> None:
    result = notification_service.create_notification(
        db_session,
        user_id=test_user.id,
        notification_type="post_upvote",
        title="t",
        message="m",
        actor_id=test_user.id,
        now=NOW,
    )

    assert result is None
    assert db_session.query(Notification).count() == 0


def test_upvotes_within_window_are_batched(db_session, test_user, other_user) -> None:
    kwargs = {
        "user_id": test_user.id,
        "notification_type": "post_upvote",
        "title": "Your post was upvoted",
        "message": "Other upvoted your post",
        "actor_id": other_user.id,
        "entity_id": "post-1",
    }
    first = notification_service.create_notification(db_session, now=NOW, **kwargs)
    later = NOW + timedelta(minutes=2)
    second = notification_service.create_notification(db_session, now=later, **kwargs)

    assert second.id == first.id
    assert second.batch_count == 2
    assert second.title == "2 users upvoted your post"
    assert as_utc(second.created_at) == later
    assert db_session.query(Notification).count() == 1


def test_notifications_outside_window_are_not_batched(db_session, test_user, other_user) -> None:
    kwargs = {
        "user_id": test_user.id,
        "notification_type": "post_upvote",
        "title": "t",
        "message": "m",
        "actor_id": other_user.id,
        "entity_id": "post-1",
    }
    notification_service.create_notification(db_session, now=NOW, **kwargs)
    notification_service.create_notification(
        db_session, now=NOW + timedelta(minutes=6), **kwargs
    )

    assert db_session.query(Notification).count() == 2


def test_read_notifications_are_not_batched_into(db_session, test_user, other_user) -> None:
    kwargs = {
        "user_id": test_user.id,
        "notification_type": "comment_reply",
        "title": "Reply to your comment",
        "message": "m",
        "actor_id": other_user.id,
        "entity_id": "comment-1",
    }
    first = notification_service.create_notification(db_session, now=NOW, **kwargs)
    notification_service.mark_read(db_session, test_user.id, first.id)

    second = notification_service.create_notification(
        db_session, now=NOW + timedelta(minutes=1), **kwargs
    )

    assert second.id != first.id


def test_disabled_preference_suppresses_type(db_session, test_user, other_user) -> None:
    _set_preferences(db_session, test_user, post_votes=False)

    result = notification_service.create_notification(
        db_session,
        user_id=test_user.id,
        notification_type="post_upvote",
        title="t",
        message="m",
        actor_id=other_user.id,
        now=NOW,
    )

    assert result is None


def test_quiet_hours_spanning_midnight(db_session, test_user) -> None:
    preferences = _set_preferences(
        db_session,
        test_user,
        quiet_hours_enabled=True,
        quiet_hours_start="22:00:00",
        quiet_hours_end="08:00:00",
        quiet_hours_timezone="UTC",
    )

    assert notification_service.in_quiet_hours(preferences, NOW.replace(hour=23)) is True
    assert notification_service.in_quiet_hours(preferences, NOW.replace(hour=3)) is True
    assert notification_service.in_quiet_hours(preferences, NOW.replace(hour=8)) is False
    assert notification_service.in_quiet_hours(preferences, NOW.replace(hour=12)) is False


def test_quiet_hours_use_the_users_timezone(db_session, test_user) -> None:
    preferences = _set_preferences(
        db_session,
        test_user,
        quiet_hours_enabled=True,
        quiet_hours_start="22:00:00",
        quiet_hours_end="23:00:00",
        quiet_hours_timezone="Asia/Kolkata",
    )

    # 16:45 UTC is 22:15 in India.
    assert notification_service.in_quiet_hours(preferences, NOW.replace(hour=16, minute=45))
    assert not notification_service.in_quiet_hours(preferences, NOW.replace(hour=22))


def test_critical_types_bypass_quiet_hours(db_session, test_user) -> None:
    _set_preferences(
        db_session,
        test_user,
        quiet_hours_enabled=True,
        quiet_hours_start="00:00:00",
        quiet_hours_end="23:59:59",
    )

    assert notification_service.should_send_notification(
        db_session, test_user.id, "event_reminder", NOW
    )
    assert notification_service.should_send_notification(
        db_session, test_user.id, "subscription_expired", NOW
    )
    assert not notification_service.should_send_notification(
        db_session, test_user.id, "mention", NOW
    )


def test_preferences_are_created_with_defaults(db_session, test_user) -> None:
    preferences = notification_service.get_or_create_preferences(db_session, test_user.id)

    assert preferences.mentions is True
    assert preferences.email_digest_enabled is False
    assert preferences.email_digest_frequency == "weekly"
    assert preferences.quiet_hours_start == "22:00:00"


def test_update_preferences_leaves_omitted_fields(db_session, test_user) -> None:
    _set_preferences(db_session, test_user, mentions=False)
    preferences = _set_preferences(db_session, test_user, email_digest_frequency="daily")

    assert preferences.mentions is False
    assert preferences.email_digest_frequency == "daily"


@pytest.mark.parametrize(
    "fields",
    [
        {"email_digest_frequency": "hourly"},
        {"quiet_hours_start": "25:00:00"},
        {"quiet_hours_end": "8:00"},
        {"quiet_hours_timezone": "Mars/Olympus_Mons"},
    ],
)
def test_invalid_preference_updates_are_rejected(fields) -> None:
    with pytest.raises(ValueError):
        NotificationPreferencesUpdate(**fields)


def test_mark_all_read_respects_cutoff(db_session, test_user, make_notification) -> None:
    old = make_notification(test_user, NOW - timedelta(minutes=5))
    at_cutoff = make_notification(test_user, NOW)
    newer = make_notification(test_user, NOW + timedelta(seconds=1))

    updated = notification_service.mark_all_read_before(db_session, test_user.id, NOW)

    assert sorted(updated) == sorted([old.id, at_cutoff.id])
    assert db_session.get(Notification, newer.id).is_read is False
    assert db_session.get(Notification, old.id).read_at is not None
    assert notification_service.count_unread(db_session, test_user.id) == 1


def test_mark_all_read_only_touches_own_notifications(
    db_session, test_user, other_user, make_notification
) -> None:
    make_notification(test_user, NOW)
    theirs = make_notification(other_user, NOW)

    notification_service.mark_all_read_before(db_session, test_user.id, NOW)

    assert db_session.get(Notification, theirs.id).is_read is False


def test_mark_read_of_foreign_notification_raises(
    db_session, test_user, other_user, make_notification
) -> None:
    theirs = make_notification(other_user, NOW)

    with pytest.raises(NotificationNotFoundError):
        notification_service.mark_read(db_session, test_user.id, theirs.id)


def test_list_notifications_filters_and_pages(db_session, test_user, make_notification) -> None:
    for minutes in range(5):
        make_notification(test_user, NOW - timedelta(minutes=minutes), is_read=minutes == 1)

    page = notification_service.list_notifications(
        db_session, test_user.id, status_filter=StatusFilter.UNREAD, limit=3
    )
    rest = notification_service.list_notifications(
        db_session,
        test_user.id,
        status_filter=StatusFilter.UNREAD,
        limit=3,
        cursor=page.next_cursor,
    )

    assert len(page.items) == 3
    assert page.has_more is True
    assert [item.is_read for item in page.items + rest.items] == [False] * 4
    assert rest.has_more is False
    assert rest.next_cursor is None


@pytest.mark.parametrize(
    ("link", "expected"),
    [
        ("/posts/123", "/posts/123"),
        ("https://theglocal.in/events/9?tab=info", "/events/9?tab=info"),
        ("https://www.theglocal.in/c/music#top", "/c/music#top"),
        ("https://evil.example.com/phish", None),
        ("https://theglocal.in.evil.com/", None),
        ("javascript:alert(1)", None),
        ("//evil.example.com/x", None),
        ("/redirect?to=https://evil.example.com", None),
        ("ftp://theglocal.in/file", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_notification_link(link, expected) -> None:
    assert notification_service.normalize_notification_link(link) == expected


def test_unsafe_links_are_dropped_on_create(db_session, test_user, other_user) -> None:
    notification = notification_service.create_notification(
        db_session,
        user_id=test_user.id,
        notification_type="mention",
        title="t",
        message="m",
        link="javascript:alert(1)",
        actor_id=other_user.id,
        now=NOW,
    )

    assert notification.link is None


@pytest.mark.parametrize(
    ("notification_type", "context", "expected"),
    [
        (
            "comment_on_post",
            {"actorName": "Asha", "postTitle": "Cleanup drive"},
            ("New comment on your post", 'Asha commented on "Cleanup drive"'),
        ),
        (
            "direct_message",
            {"actorName": "Ravi", "unreadCount": 3},
            ("3 new messages", "Ravi sent you 3 messages"),
        ),
        (
            "direct_message",
            {"actorName": "Ravi", "messagePreview": "hi"},
            ("New message", "Ravi: hi"),
        ),
        (
            "mention",
            {"actorName": "Asha"},
            ("You were mentioned", 'Asha mentioned you in "a post"'),
        ),
        ("something_else", {}, ("New notification", "You have a new notification")),
    ],
)
def test_get_notification_message(notification_type, context, expected) -> None:
    assert notification_service.get_notification_message(notification_type, context) == expected


@pytest.mark.parametrize(
    ("link", "expected"),
    [
        ("/notifications", True),
        ("http://theglocal.in/", True),
        ("https://events.theglocal.in/e/1", True),
        ("https://example.com/", False),
        ("data:text/html;base64,PHNjcmlwdD4=", False),
        ("VBScript:msgbox", False),
        ("relative/path", False),
    ],
)
def test_is_valid_notification_link(link, expected) -> None:
    assert notification_service.is_valid_notification_link(link) is expected


def test_offset_timestamps_are_stored_in_utc(db_session, test_user, other_user) -> None:
    india = timezone(timedelta(hours=5, minutes=30))
    kwargs = {
        "user_id": test_user.id,
        "notification_type": "mention",
        "message": "m",
        "actor_id": other_user.id,
    }
    notification_service.create_notification(
        db_session, title="older", now=NOW.astimezone(india), **kwargs
    )
    notification_service.create_notification(
        db_session, title="newer", now=NOW + timedelta(hours=1), **kwargs
    )

    page = notification_service.list_notifications(db_session, test_user.id, limit=10)

    assert [item.title for item in page.items] == ["newer", "older"]


def test_mark_all_read_accepts_offset_cutoff(db_session, test_user, make_notification) -> None:
    india = timezone(timedelta(hours=5, minutes=30))
    before = make_notification(test_user, NOW - timedelta(minutes=1))
    after = make_notification(test_user, NOW + timedelta(minutes=1))

    updated = notification_service.mark_all_read_before(
        db_session, test_user.id, NOW.astimezone(india)
    )

    assert updated == [before.id]
    assert db_session.get(Notification, after.id).is_read is False


def test_notification_ids_are_stored_lowercase(db_session, test_user, make_notification) -> None:
    upper = "ABCDEF00-0000-0000-0000-00000000000A"

    notification = make_notification(test_user, NOW, id=upper)

    assert notification.id == upper.lower()
    assert db_session.get(Notification, upper.lower()) is notification


def test_tied_timestamps_page_by_canonical_id(db_session, test_user, make_notification) -> None:
    ids = [
        "AAAAAAAA-0000-0000-0000-000000000001",
        "bbbbbbbb-0000-0000-0000-000000000002",
        "CCCCCCCC-0000-0000-0000-000000000003",
    ]
    for notification_id in ids:
        make_notification(test_user, NOW, id=notification_id)

    first = notification_service.list_notifications(db_session, test_user.id, limit=2)
    rest = notification_service.list_notifications(
        db_session, test_user.id, limit=2, cursor=first.next_cursor
    )

    assert [item.id for item in first.items + rest.items] == [
        notification_id.lower() for notification_id in reversed(ids)
    ]
    assert rest.has_more is False
