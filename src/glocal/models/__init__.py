# src/glocal/models/__init__.py
"""SQLAlchemy models for the Glocal application."""

from .notification import Notification, NotificationPreferences
from .poll import Poll, PollOption, PollVote, PollVoteHistory
from .user import User

__all__ = [
    "Notification", "NotificationPreferences",
    "Poll", "PollOption", "PollVote", "PollVoteHistory",
    "User",
]
