"""Keyset pagination over ``(created_at DESC, id DESC)`` ordered feeds.

Cursors pin an absolute position in the ordering rather than an offset, so
rows inserted ahead of a cursor never shift the pages that follow it. The
token handed to clients is opaque: unpadded base64url over a small JSON
object. A token that fails to decode is treated as no cursor at all.
"""

from __future__ import annotations

import base64
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Generic, Protocol, TypeVar

from glocal.db.time import as_utc
from glocal.schemas.common import NotificationCursor


class StatusFilter(str, Enum):
    """Read-state filter for a notification feed."""

    ALL = "all"
    UNREAD = "unread"
    READ = "read"

    @classmethod
    def parse(cls, value: str | None) -> StatusFilter:
        """Return the matching filter, falling back to ``ALL`` for unknown values."""
        if value is None:
            return cls.ALL
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.ALL

    def matches(self, is_read: bool) -> bool:
        if self is StatusFilter.UNREAD:
            return not is_read
        if self is StatusFilter.READ:
            return is_read
        return True


class KeysetRow(Protocol):
    """Attributes a row needs to take part in keyset pagination."""

    id: str
    created_at: datetime
    is_read: bool


RowT = TypeVar("RowT", bound=KeysetRow)


@dataclass(frozen=True)
class CursorPage(Generic[RowT]):
    """A slice of the ordered feed and the token to resume after it."""

    items: list[RowT] = field(default_factory=list)
    has_more: bool = False
    next_cursor: str | None = None


def clamp_limit(limit: int | None, *, default: int, maximum: int) -> int:
    """Clamp a requested page size into ``[1, maximum]``."""
    if limit is None:
        return max(1, min(default, maximum))
    return max(1, min(limit, maximum))


def encode_cursor(cursor: NotificationCursor) -> str:
    """Serialise a cursor into a URL-safe opaque token."""
    payload = cursor.model_dump_json(by_alias=True).encode("utf-8")
    return base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")


def decode_cursor(token: str | None) -> NotificationCursor | None:
    """Decode an opaque token, returning ``None`` for anything malformed."""
    if not token:
        return None
    padding = "=" * (-len(token) % 4)
    try:
        payload = base64.urlsafe_b64decode(token + padding)
        # pydantic's ValidationError, binascii.Error and UnicodeDecodeError
        # are all ValueError subclasses.
        return NotificationCursor.model_validate_json(payload)
    except ValueError:
        return None


def cursor_for(row: KeysetRow) -> NotificationCursor:
    """Build the cursor pointing at ``row``."""
    return NotificationCursor(createdAt=as_utc(row.created_at), id=row.id)


def is_after_cursor(row: KeysetRow, cursor: NotificationCursor) -> bool:
    """Return True if ``row`` sorts strictly after ``cursor`` in descending order.

    Ids compare as their stored text, matching the SQL predicate; stored ids
    are canonical lowercase UUIDs.
    """
    row_created = as_utc(row.created_at)
    if row_created != cursor.created_at:
        return row_created < cursor.created_at
    return str(row.id) < str(cursor.id)


def build_page(
    rows: Sequence[RowT],
    *,
    limit: int,
    cursor: NotificationCursor | None = None,
    status_filter: StatusFilter = StatusFilter.ALL,
) -> CursorPage[RowT]:
    """Turn an over-fetched, ordered batch of rows into a page.

    ``rows`` must already be ordered by ``(created_at DESC, id DESC)`` and
    should hold up to ``limit + 1`` candidates; the extra row only signals
    that another page exists. The cursor and status filter are re-applied
    here whether or not the storage query already did so.

    Args:
        rows: Candidate rows in feed order.
        limit: Maximum number of rows to return; must be positive.
        cursor: Position of the last row the caller has already seen.
        status_filter: Read-state restriction.

    Returns:
        The page, with ``next_cursor`` set only when ``has_more`` is True.
    """
    if limit < 1:
        raise ValueError("limit must be a positive integer")

    candidates = list(rows)
    if cursor is not None:
        candidates = [row for row in candidates if is_after_cursor(row, cursor)]
    candidates = [row for row in candidates if status_filter.matches(row.is_read)]

    has_more = len(candidates) > limit
    items = candidates[:limit]

    next_cursor: str | None = None
    if has_more and items:
        next_cursor = encode_cursor(cursor_for(items[-1]))

    return CursorPage(items=items, has_more=has_more, next_cursor=next_cursor)
