# src/glocal/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import notifications_router, polls_router

__all__ = [
    "notifications_router",
    "polls_router",
]
