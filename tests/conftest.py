# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from groups_admin.db.session import Base
from groups_admin.db.session import get_db as app_get_session
from groups_admin.db.time import utcnow
from groups_admin.main import app as fastapi_app
from groups_admin.models import Message, TelegramUser
from groups_admin.repositories.message_repo import MessageRepository
from groups_admin.repositories.user_repo import TelegramUserRepository

TEST_DB_URL = "sqlite://"


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    # One private in-memory database per test; services commit freely.
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture()
def client(app: FastAPI, db_session: Session) -> Iterator[TestClient]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        with TestClient(app, base_url="http://test") as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., TelegramUser]:
    """Return a factory that persists Telegram users."""

    def _make(user_id: int, username: str | None = None) -> TelegramUser:
        user = TelegramUserRepository(db_session).create(
            telegram_user_id=user_id,
            username=username or f"user{user_id}",
            first_name="Test",
        )
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def test_user(make_user: Callable[..., TelegramUser]) -> TelegramUser:
    """Create and return a persisted Telegram user."""
    return make_user(1001, "spammer")


@pytest.fixture()
def make_message(db_session: Session) -> Callable[..., Message]:
    def _make(message_id: int, text: str | None, user_id: int = 1001) -> Message:
        message = MessageRepository(db_session).add(
            message_id=message_id,
            chat_id=-100123,
            user_id=user_id,
            message_text=text,
            sent_at=utcnow(),
        )
        db_session.commit()
        return message

    return _make
