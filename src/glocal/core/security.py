"""Token and secret-comparison utilities."""
from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt

from glocal.core.settings import settings


def secure_compare(a: str, b: str) -> bool:
    """Compare two secret strings without leaking the mismatch position.

    Args:
        a: Value supplied by the caller.
        b: Expected value computed on the server.

    Returns:
        True if both strings are identical; False otherwise, including when
        their lengths differ.
    """
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create a JWT access token for the given user id."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT access token.

    Raises:
        jose.JWTError: If the token is malformed, expired or wrongly signed.
    """
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[settings.jwt_algorithm],
    )
    return payload
