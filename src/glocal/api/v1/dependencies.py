"""Shared API dependencies for authentication and common functionality."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from glocal.core.security import decode_access_token
from glocal.core.settings import settings
from glocal.db.session import get_db
from glocal.models import User
from glocal.services.rate_limit import RateLimitService, get_rate_limit_service

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: SessionDep,
) -> User:
    """Get the current authenticated user from JWT token.

    Args:
        credentials: HTTP Bearer token credentials
        db: Database session

    Returns:
        User object for the authenticated user

    Raises:
        HTTPException: If token is invalid or user not found
    """
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )

    user = db.get(User, subject)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


# Type alias for current user dependency
CurrentUserDep = Annotated[User, Depends(get_current_user)]


def get_voting_secret() -> str:
    """Return the key for anonymous voting tokens."""
    return settings.voting_secret


VotingSecretDep = Annotated[str, Depends(get_voting_secret)]


def get_rate_limit_service_dep() -> RateLimitService:
    """Return the shared rate limit service."""
    return get_rate_limit_service()


def enforce_rate_limit(
    request: Request,
    limiter: Annotated[RateLimitService, Depends(get_rate_limit_service_dep)],
) -> None:
    """Reject the request with 429 once the caller exceeds the per-window quota."""
    if not settings.rate_limit_enabled:
        return

    client = request.client.host if request.client else "anonymous"
    decision = limiter.hit(
        f"{client}:{request.method}:{request.url.path}",
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    if not decision.allowed:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
            headers={"Retry-After": str(decision.retry_after)},
        )
