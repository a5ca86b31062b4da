# src/glocal/services/__init__.py
"""Business logic services for the Glocal application."""

from .pagination import CursorPage, StatusFilter
from .rate_limit import RateLimitService

__all__ = [
    "CursorPage",
    "StatusFilter",
    "RateLimitService",
]
