"""Builders for users, slots and bookings used across the test suite."""

import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from booking_service.rabbitmq import RabbitPublisher
from booking_service.models import AvailabilitySlot, Booking, BookingStatus, User, UserRole

# "Now" for every test; day D sits one day later.
NOW = datetime(2030, 5, 17, 9, 0, tzinfo=timezone.utc)
DAY = datetime(2030, 5, 18, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: int = 0) -> datetime:
    """Instant on day D (+day) at hour:minute UTC."""
    return DAY + timedelta(days=day, hours=hour, minutes=minute)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingPublisher(RabbitPublisher):
    def __init__(self):
        super().__init__(url=None)
        self.published = []

    async def publish(self, routing_key: str, data: dict):
        self.published.append((routing_key, data))


async def add_user(session_factory, role: UserRole, created_at: datetime = NOW, name: str = "Test") -> User:
    user = User(
        email=f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com",
        role=role.value,
        first_name=name,
        last_name=role.value.capitalize(),
        created_at=created_at,
    )
    async with session_factory() as db:
        db.add(user)
        await db.commit()
    return user


async def add_customer(session_factory, name: str = "Bob") -> User:
    return await add_user(session_factory, UserRole.CUSTOMER, name=name)


async def add_painter(session_factory, created_at: datetime = NOW, name: str = "John") -> User:
    return await add_user(session_factory, UserRole.PAINTER, created_at=created_at, name=name)


async def add_slot(session_factory, painter: User, start: datetime, end: datetime, reserved: bool = False) -> AvailabilitySlot:
    slot = AvailabilitySlot(
        provider_id=painter.id,
        start_time=start,
        end_time=end,
        reserved=reserved,
        version=1,
        created_at=NOW,
    )
    async with session_factory() as db:
        db.add(slot)
        await db.commit()
    return slot


async def add_booking(
    session_factory,
    customer: User,
    painter: User,
    start: datetime,
    end: datetime,
    status: BookingStatus = BookingStatus.CONFIRMED,
    slot: AvailabilitySlot | None = None,
) -> Booking:
    booking = Booking(
        customer_id=customer.id,
        provider_id=painter.id,
        slot_id=slot.id if slot else None,
        start_time=start,
        end_time=end,
        status=status.value,
        created_at=NOW,
        updated_at=NOW,
    )
    async with session_factory() as db:
        db.add(booking)
        await db.commit()
    return booking


async def get_slot(session_factory, slot_id: str) -> AvailabilitySlot:
    async with session_factory() as db:
        res = await db.execute(select(AvailabilitySlot).where(AvailabilitySlot.id == slot_id))
        return res.scalar_one()


async def count_bookings(session_factory) -> int:
    async with session_factory() as db:
        res = await db.execute(select(Booking))
        return len(res.scalars().all())
