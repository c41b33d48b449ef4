"""Pytest configuration and shared fixtures."""

import os

os.environ.setdefault("BOOKING_DB", "sqlite+aiosqlite://")
os.environ.pop("RABBIT_URL", None)
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from booking_service import models  # noqa: E402,F401
from booking_service.availability import AvailabilityManager  # noqa: E402
from booking_service.bookings import BookingManager  # noqa: E402
from booking_service.db import Base  # noqa: E402
from booking_service.scoring import StaticResponsiveness  # noqa: E402

from tests.factories import NOW, FixedClock, RecordingPublisher  # noqa: E402


@pytest.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(bind=engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def manager(session_factory, clock, publisher):
    return BookingManager(
        session_factory,
        clock=clock,
        responsiveness=StaticResponsiveness(4.0),
        publisher=publisher,
    )


@pytest.fixture
def availability_manager(session_factory, clock, publisher):
    return AvailabilityManager(session_factory, clock=clock, publisher=publisher)
