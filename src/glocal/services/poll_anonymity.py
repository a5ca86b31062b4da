"""Anonymous, per-poll voting identities.

A voter is represented on a poll only by an HMAC-SHA-256 of their user id
and the poll id, keyed with a server secret. The token is stable for a
``(user, poll)`` pair, which is enough to reject a second vote, but tokens
for the same user on different polls cannot be correlated without the key.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from glocal.core.security import secure_compare
from glocal.db.time import as_utc, utcnow

VOTING_TOKEN_LENGTH = 64
ANONYMOUS_VOTER_ID_SPACE = 1_000_000
_VOTER_ID_PREFIX_CHARS = 8


def _require_identifier(name: str, value: object) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a string, got {type(value).__name__}")
    if not value.strip():
        raise ValueError(f"{name} must not be empty")
    return value


def derive_voting_token(user_id: str, poll_id: str, secret: str) -> str:
    """Derive the voting token for ``user_id`` on ``poll_id``.

    Args:
        user_id: Identifier of the voter.
        poll_id: Identifier of the poll.
        secret: Server-held key; never exposed to clients.

    Returns:
        A 64-character lowercase hex digest.

    Raises:
        TypeError: If ``user_id`` or ``poll_id`` is not a string.
        ValueError: If any argument is empty.
    """
    user_id = _require_identifier("user_id", user_id)
    poll_id = _require_identifier("poll_id", poll_id)
    if not isinstance(secret, str) or not secret:
        raise ValueError("A voting secret must be configured")

    message = f"{user_id}:{poll_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_voting_token(token: object, user_id: str, poll_id: str, secret: str) -> bool:
    """Return True iff ``token`` is the voting token for ``user_id`` on ``poll_id``."""
    expected = derive_voting_token(user_id, poll_id, secret)
    if not isinstance(token, str):
        return False
    return secure_compare(token, expected)


def derive_anonymous_voter_id(token: str) -> int:
    """Map a voting token to a display number in ``[0, 1_000_000)``.

    Raises:
        ValueError: If ``token`` does not start with hexadecimal digits.
    """
    if not isinstance(token, str) or len(token) < _VOTER_ID_PREFIX_CHARS:
        raise ValueError("Voting token is too short")
    prefix = int(token[:_VOTER_ID_PREFIX_CHARS], 16)
    return prefix % ANONYMOUS_VOTER_ID_SPACE


def is_poll_active(expires_at: datetime | str | None, now: datetime | None = None) -> bool:
    """Return True if a poll with this expiry still accepts votes.

    A poll without an expiry never closes. The boundary is exclusive: a poll
    expiring exactly at ``now`` is closed. Naive datetimes are taken as UTC.
    """
    if expires_at is None:
        return True
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
    current = as_utc(now) if now is not None else utcnow()
    return current < as_utc(expires_at)


def _percentage(votes: int, total: int) -> int:
    # Integer round-half-up of 100 * votes / total.
    return (200 * votes + total) // (2 * total)


def calculate_poll_results(options: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Attach a whole-number ``percentage`` to each option.

    Each percentage is rounded independently (half up), so the total can
    drift from 100; with no votes every option gets 0.
    """
    rows = [dict(option) for option in options]
    for row in rows:
        count = row.setdefault("vote_count", 0)
        if not isinstance(count, int) or count < 0:
            raise ValueError("vote_count must be a non-negative integer")

    total = sum(row["vote_count"] for row in rows)
    for row in rows:
        row["percentage"] = _percentage(row["vote_count"], total) if total else 0
    return rows
