# src/glocal/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .common import NotificationCursor
from .notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationPreferencesResponse,
    NotificationPreferencesUpdate,
    NotificationResponse,
    PageInfo,
    UnreadCountResponse,
)
from .poll import (
    PollCreate,
    PollOptionResult,
    PollResponse,
    PollResultsResponse,
    PollVoteCreate,
    PollVoteReceipt,
)

__all__ = [
    "NotificationCursor",
    "MarkAllReadResponse", "NotificationListResponse",
    "NotificationPreferencesResponse", "NotificationPreferencesUpdate",
    "NotificationResponse", "PageInfo", "UnreadCountResponse",
    "PollCreate", "PollOptionResult", "PollResponse",
    "PollResultsResponse", "PollVoteCreate", "PollVoteReceipt",
]
