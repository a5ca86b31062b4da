"""Engine and per-request session handling for the Glocal database."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from glocal.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for every Glocal table."""


# Models register their tables on Base.metadata at import time.
import glocal.models  # noqa: E402,F401


def _engine_options(url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"pool_pre_ping": True, "echo": settings.sql_debug}
    if url.startswith("sqlite"):
        # Sync dependencies run in a threadpool, not on the request's thread.
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    """Yield a session for one request and close it afterwards."""
    with SessionLocal() as db:
        yield db
