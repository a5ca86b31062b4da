# src/glocal/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .notifications import router as notifications_router
from .polls import router as polls_router

__all__ = [
    "notifications_router",
    "polls_router",
]
