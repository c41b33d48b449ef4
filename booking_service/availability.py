from sqlalchemy import select

from .clock import Clock, isoformat, utcnow
from .errors import ConflictError
from .models import AvailabilitySlot, UserRole
from .rabbitmq import RabbitPublisher, publisher as default_publisher
from .users import resolve_user
from .validation import parse_timestamp, validate_time_range


class AvailabilityManager:
    """Provider-side management of open slots."""

    def __init__(self, session_factory, clock: Clock = utcnow, publisher: RabbitPublisher | None = None):
        self.session_factory = session_factory
        self.clock = clock
        self.publisher = publisher or default_publisher

    async def create_availability(self, provider_id: str, start, end) -> AvailabilitySlot:
        async with self.session_factory() as db:
            await resolve_user(db, provider_id, UserRole.PAINTER)
            start_dt, end_dt = validate_time_range(start, end, now=self.clock())

            res = await db.execute(
                select(AvailabilitySlot.id)
                .where(
                    AvailabilitySlot.provider_id == provider_id,
                    AvailabilitySlot.start_time < end_dt,
                    AvailabilitySlot.end_time > start_dt,
                )
                .limit(1)
            )
            if res.scalar_one_or_none():
                raise ConflictError("Time slot overlaps with existing availability")

            slot = AvailabilitySlot(
                provider_id=provider_id,
                start_time=start_dt,
                end_time=end_dt,
                reserved=False,
                version=1,
                created_at=self.clock(),
            )
            db.add(slot)
            await db.commit()

        await self.publisher.publish(
            "availability.created",
            {
                "slot_id": slot.id,
                "provider_id": provider_id,
                "start_time": isoformat(start_dt),
                "end_time": isoformat(end_dt),
            },
        )
        return slot

    async def find_provider_availability(self, provider_id: str) -> list[AvailabilitySlot]:
        async with self.session_factory() as db:
            res = await db.execute(
                select(AvailabilitySlot)
                .where(AvailabilitySlot.provider_id == provider_id)
                .order_by(AvailabilitySlot.start_time.asc())
            )
            return list(res.scalars().all())

    async def find_available_slots(
        self,
        start=None,
        end=None,
        provider_id: str | None = None,
    ) -> list[AvailabilitySlot]:
        stmt = select(AvailabilitySlot).where(
            AvailabilitySlot.reserved.is_(False),
            AvailabilitySlot.start_time > self.clock(),
        )
        if start is not None:
            stmt = stmt.where(AvailabilitySlot.start_time >= parse_timestamp(start))
        if end is not None:
            stmt = stmt.where(AvailabilitySlot.end_time <= parse_timestamp(end))
        if provider_id:
            stmt = stmt.where(AvailabilitySlot.provider_id == provider_id)

        async with self.session_factory() as db:
            res = await db.execute(stmt.order_by(AvailabilitySlot.start_time.asc()))
            return list(res.scalars().all())
