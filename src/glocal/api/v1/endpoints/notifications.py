# src/glocal/api/v1/endpoints/notifications.py
"""Notification endpoints for the Glocal API."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from glocal.api.v1.dependencies import CurrentUserDep, SessionDep, enforce_rate_limit
from glocal.core.route_logging import get_route_logger
from glocal.core.settings import settings
from glocal.db.time import utcnow
from glocal.models import Notification, NotificationPreferences
from glocal.schemas.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    NotificationResponse,
    PageInfo,
    UnreadCountResponse,
)
from glocal.services import notifications as notification_service
from glocal.services.notifications import NotificationNotFoundError
from glocal.services.pagination import StatusFilter, clamp_limit

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    dependencies=[Depends(enforce_rate_limit)],
)


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    current_user: CurrentUserDep,
    db: SessionDep,
    status_filter: str = Query("all", alias="filter", description="all, unread or read"),
    limit: int | None = Query(None, description="Page size; clamped to the allowed range"),
    cursor: str | None = Query(None, description="Opaque cursor from a previous page"),
) -> NotificationListResponse:
    """List notifications newest first with cursor-based pagination.

    Unknown ``filter`` values fall back to ``all`` and ``limit`` is clamped,
    so stale or hand-edited links still return a page. A cursor that cannot
    be decoded restarts from the newest notification.
    """
    logger = get_route_logger("GET", "/notifications")
    resolved_filter = StatusFilter.parse(status_filter)
    page_size = clamp_limit(
        limit,
        default=settings.notifications_page_size,
        maximum=settings.notifications_max_page_size,
    )
    logger.info(
        "Fetching notifications filter=%s limit=%d has_cursor=%s",
        resolved_filter.value,
        page_size,
        cursor is not None,
    )

    page = notification_service.list_notifications(
        db,
        current_user.id,
        status_filter=resolved_filter,
        limit=page_size,
        cursor=cursor,
    )
    return NotificationListResponse(
        notifications=page.items,
        page_info=PageInfo(
            has_more=page.has_more,
            next_cursor=page.next_cursor,
            limit=page_size,
            filter=resolved_filter.value,
        ),
    )


@router.patch("", response_model=MarkAllReadResponse)
async def mark_all_notifications_read(
    current_user: CurrentUserDep,
    db: SessionDep,
) -> MarkAllReadResponse:
    """Mark every notification received so far as read.

    The cutoff is taken before the update starts; anything arriving later
    stays unread and the client can reconcile against ``cutoff_time``.
    """
    logger = get_route_logger("PATCH", "/notifications")
    cutoff = utcnow()
    updated_ids = notification_service.mark_all_read_before(db, current_user.id, cutoff)
    logger.info(
        "Marked notifications as read count=%d sample_ids=%s",
        len(updated_ids),
        updated_ids[:5],
    )
    return MarkAllReadResponse(updated_count=len(updated_ids), cutoff_time=cutoff)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    current_user: CurrentUserDep,
    db: SessionDep,
) -> UnreadCountResponse:
    """Return the number of unread notifications."""
    return UnreadCountResponse(unread=notification_service.count_unread(db, current_user.id))


@router.get("/preferences", response_model=NotificationPreferencesResponse)
async def get_preferences(
    current_user: CurrentUserDep,
    db: SessionDep,
) -> NotificationPreferences:
    """Return notification preferences, creating defaults on first access."""
    return notification_service.get_or_create_preferences(db, current_user.id)


@router.patch("/preferences", response_model=NotificationPreferencesResponse)
async def update_preferences(
    changes: NotificationPreferencesUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> NotificationPreferences:
    """Update a subset of notification preferences."""
    logger = get_route_logger("PATCH", "/notifications/preferences")
    preferences = notification_service.update_preferences(db, current_user.id, changes)
    logger.info("Updated preferences fields=%s", sorted(changes.model_fields_set))
    return preferences


@router.patch("/{notification_id}", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Notification:
    """Mark a single notification as read."""
    try:
        return notification_service.mark_read(db, current_user.id, notification_id)
    except NotificationNotFoundError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        ) from err
