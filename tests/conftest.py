# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("POLL_VOTE_SECRET", "test-poll-vote-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from glocal.core.security import create_access_token
from glocal.db.session import Base
from glocal.db.session import get_db as app_get_session
from glocal.main import app as fastapi_app
from glocal.models import Notification, Poll, PollOption, User
from glocal.services.rate_limit import get_rate_limit_service

TEST_DB_URL = "sqlite://"
TEST_VOTING_SECRET = os.environ["POLL_VOTE_SECRET"]


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite defers BEGIN on its own; SAVEPOINTs need SQLAlchemy to emit it.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    # Service commits release a SAVEPOINT; the outer transaction is rolled back.
    SessionLocal = sessionmaker(
        bind=connection,
        autoflush=False,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture(autouse=True)
def reset_rate_limits() -> Iterator[None]:
    """Start every test with empty request counters."""
    get_rate_limit_service().reset()
    yield
    get_rate_limit_service().reset()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def voting_secret() -> str:
    return TEST_VOTING_SECRET


def _create_user(db_session: Session, display_name: str) -> User:
    user = User(display_name=display_name)
    db_session.add(user)
    db_session.flush()
    db_session.refresh(user)
    return user


@pytest.fixture()
def test_user(db_session: Session) -> Iterator[User]:
    """Create and return a persisted test user."""
    yield _create_user(db_session, "Test User")


@pytest.fixture()
def other_user(db_session: Session) -> Iterator[User]:
    """Create and return a second persisted user."""
    yield _create_user(db_session, "Other User")


@pytest.fixture()
def auth_token(test_user: User) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    token = create_access_token(test_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def other_auth_token(other_user: User) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    token = create_access_token(other_user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def make_notification(db_session: Session) -> Callable[..., Notification]:
    """Return a factory that persists notifications with explicit timestamps."""

    def _make(user: User, created_at: datetime, **overrides: Any) -> Notification:
        fields: dict[str, Any] = {
            "user_id": user.id,
            "type": "comment_on_post",
            "title": "New comment on your post",
            "message": "Someone commented",
            "created_at": created_at,
            "is_read": False,
        }
        fields.update(overrides)
        notification = Notification(**fields)
        db_session.add(notification)
        db_session.flush()
        db_session.refresh(notification)
        return notification

    return _make


@pytest.fixture()
def test_poll(db_session: Session, test_user: User) -> Iterator[Poll]:
    """Create an open poll with three options."""
    poll = Poll(
        question="Where should the next meetup be?",
        created_by=test_user.id,
        expires_at=datetime(2999, 1, 1, tzinfo=UTC),
        options=[
            PollOption(text="Park", position=0, vote_count=0),
            PollOption(text="Library", position=1, vote_count=0),
            PollOption(text="Cafe", position=2, vote_count=0),
        ],
    )
    db_session.add(poll)
    db_session.flush()
    db_session.refresh(poll)
    yield poll


@pytest.fixture()
def expired_poll(db_session: Session, test_user: User) -> Iterator[Poll]:
    """Create a poll whose expiry has already passed."""
    poll = Poll(
        question="Closed question",
        created_by=test_user.id,
        expires_at=datetime(2000, 1, 1, tzinfo=UTC),
        options=[
            PollOption(text="Yes", position=0, vote_count=0),
            PollOption(text="No", position=1, vote_count=0),
        ],
    )
    db_session.add(poll)
    db_session.flush()
    db_session.refresh(poll)
    yield poll
