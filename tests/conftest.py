"""Shared fixtures: in-memory database, frozen clock, accounts."""

from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cleaning_market.booking.clock import Clock
from cleaning_market.models import Base, Cleaner, Client

# Monday 2 March 2026, 09:00 marketplace time
START = datetime(2026, 3, 2, 9, 0)


class FrozenClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, current: datetime):
        super().__init__("UTC")
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    Base.metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FrozenClock(START)


@pytest.fixture
def tomorrow() -> date:
    return START.date() + timedelta(days=1)


def _client(db, username: str) -> Client:
    client = Client(username=username, password_hash="x", name=username.title(), email=f"{username}@example.com")
    db.add(client)
    db.commit()
    return client


def _cleaner(db, username: str, hourly_price: float = 20.0) -> Cleaner:
    cleaner = Cleaner(
        username=username,
        password_hash="x",
        name=username.title(),
        email=f"{username}@example.com",
        hourly_price=hourly_price,
        services=["house cleaning"],
    )
    db.add(cleaner)
    db.commit()
    return cleaner


@pytest.fixture
def client(db) -> Client:
    return _client(db, "alice")


@pytest.fixture
def other_client(db) -> Client:
    return _client(db, "bob")


@pytest.fixture
def cleaner(db) -> Cleaner:
    return _cleaner(db, "carol", hourly_price=25.0)


@pytest.fixture
def cleaner_b(db) -> Cleaner:
    return _cleaner(db, "dave")
