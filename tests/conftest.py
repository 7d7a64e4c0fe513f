"""Pytest configuration and shared fixtures."""

import os

# Must be set before legalflow.core.config caches its settings
os.environ.setdefault("LEGALFLOW_DATABASE_URL", "sqlite://")
os.environ.setdefault("LEGALFLOW_FILE_LOGGING", "false")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from legalflow.common.forms import default_forms
from legalflow.core.approval import ApprovalService
from legalflow.db.base import Base
import legalflow.db.models  # noqa: F401


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture()
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def forms():
    return default_forms()


@pytest.fixture()
def clock():
    return FrozenClock(datetime(2026, 3, 2, 9, 30, 0))


@pytest.fixture()
def service(db_session, forms, clock):
    return ApprovalService(db_session, forms=forms, sla_days=14, max_retries=3, clock=clock)


@pytest.fixture()
def client(session_factory):
    """API client whose requests use the per-test database."""
    from legalflow.api.deps import get_db
    from legalflow.api.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
