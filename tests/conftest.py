"""
Pytest configuration and shared fixtures for tests
"""

import asyncio
from datetime import date, datetime, timedelta

import pytest
from sqlmodel import Session, SQLModel, create_engine
from sqlalchemy.pool import StaticPool

from carguard import db_models  # noqa: F401
from carguard.config import reset_config
from carguard.models import CarInfo, ReminderObligation, ServiceType, UserSettings


@pytest.fixture(autouse=True)
def fresh_config():
    """Each test reads configuration from a clean environment"""
    reset_config()
    yield
    reset_config()


@pytest.fixture(name="db_engine")
def db_engine_fixture():
    """Create in-memory SQLite database engine for testing"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,  # Keep single connection for in-memory DB
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(name="db_session")
def db_session_fixture(db_engine):
    """Create database session for testing"""
    with Session(db_engine) as session:
        yield session
        session.rollback()  # Rollback any uncommitted changes after test


class FakeClock:
    """Clock whose sleep() advances time instantly and records each wait"""

    def __init__(self, start: datetime):
        self.current = start
        self.sleeps = []

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += timedelta(seconds=seconds)
        await asyncio.sleep(0)


class RecordingNotifier:
    """Notifier that records calls; fails for emails listed in fail_for"""

    def __init__(self, fail_for=(), raise_for=()):
        self.calls = []
        self.todays = []
        self.fail_for = set(fail_for)
        self.raise_for = set(raise_for)

    async def send(self, to_email, car, service_type, expiry_date, today=None) -> bool:
        self.calls.append((to_email, car, service_type, expiry_date))
        self.todays.append(today)
        if to_email in self.raise_for:
            raise ConnectionError("smtp down")
        return to_email not in self.fail_for


class InMemoryStore:
    """ObligationStore over plain dicts, for sweep tests"""

    def __init__(self, obligations=(), cars=(), users=()):
        self.obligations = {o.id: o for o in obligations}
        self.cars = {c.id: c for c in cars}
        self.users = {u.id: u for u in users}
        self.marked = []
        self.list_calls = 0
        self.lookups = []

    def list_unsent(self):
        self.list_calls += 1
        return [o for o in self.obligations.values() if not o.sent]

    def get_car(self, car_id):
        self.lookups.append(("car", car_id))
        return self.cars.get(car_id)

    def get_user(self, user_id):
        self.lookups.append(("user", user_id))
        return self.users.get(user_id)

    def mark_sent(self, obligation_id):
        self.marked.append(obligation_id)
        old = self.obligations[obligation_id]
        self.obligations[obligation_id] = ReminderObligation(
            id=old.id,
            car_id=old.car_id,
            user_id=old.user_id,
            service_type=old.service_type,
            expiry_date=old.expiry_date,
            sent=True,
        )


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 6, 1, 9, 0, 0))


@pytest.fixture
def today(clock):
    return clock.now().date()


@pytest.fixture
def make_obligation(today):
    def _make(id, user_id=1, car_id=1, service_type=ServiceType.TAX, days=5, sent=False):
        return ReminderObligation(
            id=id,
            car_id=car_id,
            user_id=user_id,
            service_type=service_type,
            expiry_date=today + timedelta(days=days),
            sent=sent,
        )

    return _make


@pytest.fixture
def car():
    return CarInfo(id=1, user_id=1, brand="Toyota", model="Corolla", year=2018)


@pytest.fixture
def user():
    return UserSettings(id=1, email="Owner@Example.COM", reminder_days=30)


@pytest.fixture
def expiry():
    return date(2025, 6, 20)
