from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from steadyday.api import deps
from steadyday.core.clock import ClockService
from steadyday.core.config import RateLimitPolicy
from steadyday.core.rate_limiter import RateLimiterRegistry
from steadyday.db.base import Base
from steadyday.main import create_application
from steadyday.reminders import repository
from steadyday.reminders.schemas import ReminderCreate
from steadyday.reminders.service import ReminderScheduler

# Noon UTC on a Tuesday
NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
OWNER = "user-1"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return ClockService(fixed_now=NOW)


@pytest.fixture
def scheduler(db, clock):
    return ReminderScheduler(db, clock, tz=timezone.utc)


@pytest.fixture
def make_reminder(db):
    def _make(owner=OWNER, scheduled_for=NOW, priority="normal", title="Reminder", **kwargs):
        return repository.create_reminder(
            db,
            ReminderCreate(user_id=owner, title=title, scheduled_for=scheduled_for, priority=priority, **kwargs),
        )
    return _make


@pytest.fixture
def limiter_clock():
    """Mutable monotonic clock: limiter_clock.now += seconds"""
    class _Clock:
        now = 1_000.0

        def __call__(self):
            return self.now

        def advance(self, seconds):
            self.now += seconds

    return _Clock()


@pytest.fixture
def rate_limiters(limiter_clock):
    return RateLimiterRegistry(
        {"reminders": RateLimitPolicy(window_seconds=60, max_requests=30)},
        clock=limiter_clock,
    )


@pytest.fixture
def app(session_factory, clock, rate_limiters):
    app = create_application(rate_limiters=rate_limiters)

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_clock] = lambda: clock
    return app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"X-User-Id": OWNER}


def minutes(n):
    return timedelta(minutes=n)
