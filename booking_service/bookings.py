"""
Booking lifecycle: validation, candidate search, assignment, slot reservation
and persistence, plus status transitions with slot release.

A booking and the reservation of its slot are written in the same session and
committed together. The reservation is a compare-and-swap on the slot's
version, so when two customers race for one slot the loser's transaction is
rolled back and it gets ConflictError; no booking row is left behind.
"""
from dataclasses import dataclass, field
from datetime import timedelta

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from . import slots
from .assignment import find_alternatives, select_best
from .clock import Clock, as_utc, isoformat, utcnow
from .config import ALTERNATIVE_WINDOW_HOURS, MAX_ALTERNATIVES, SERVICE_NAME
from .errors import (
    ConflictError,
    InvalidInputError,
    InvalidRangeError,
    InvalidTransitionError,
    NoCandidatesError,
    NotFoundError,
)
from .models import AvailabilitySlot, Booking, BookingStatus, UserRole
from .rabbitmq import RabbitPublisher, publisher as default_publisher
from .scoring import ProviderScorer, ResponsivenessProvider
from .users import resolve_user
from .validation import parse_timestamp, validate_time_range

# Pending is never entered after creation; Cancelled is terminal.
ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
    BookingStatus.CANCELLED: set(),
}


@dataclass
class BookingResult:
    """Either a booking was made, or zero or more alternatives are offered."""

    booking: Booking | None = None
    alternatives: list[AvailabilitySlot] = field(default_factory=list)

    @property
    def booked(self) -> bool:
        return self.booking is not None


def booking_event_data(booking: Booking) -> dict:
    return {
        "booking_id": booking.id,
        "customer_id": booking.customer_id,
        "provider_id": booking.provider_id,
        "slot_id": booking.slot_id,
        "start_time": isoformat(booking.start_time),
        "end_time": isoformat(booking.end_time),
        "status": booking.status,
    }


def _coerce_status(value) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise InvalidInputError(f"Unknown booking status: {value}") from None


class BookingManager:
    def __init__(
        self,
        session_factory,
        clock: Clock = utcnow,
        responsiveness: ResponsivenessProvider | None = None,
        publisher: RabbitPublisher | None = None,
        window_hours: float = ALTERNATIVE_WINDOW_HOURS,
        max_alternatives: int = MAX_ALTERNATIVES,
    ):
        self.session_factory = session_factory
        self.clock = clock
        self.scorer = ProviderScorer(responsiveness, clock=clock)
        self.publisher = publisher or default_publisher
        self.window_hours = window_hours
        self.max_alternatives = max_alternatives

    # ---- creation ----

    async def create_booking(self, customer_id: str, start, end) -> BookingResult:
        async with self.session_factory() as db:
            await resolve_user(db, customer_id, UserRole.CUSTOMER)

            now = self.clock()
            start_dt, end_dt = validate_time_range(start, end, now=now)

            candidates = await slots.find_covering_free_slots(db, start_dt, end_dt)
            try:
                chosen = await select_best(db, candidates, self.scorer)
            except NoCandidatesError:
                alternatives = await find_alternatives(
                    db,
                    start_dt,
                    end_dt,
                    window_hours=self.window_hours,
                    limit=self.max_alternatives,
                    not_before=now,
                )
                print(
                    f"[{SERVICE_NAME}] no painter covers {isoformat(start_dt)}..{isoformat(end_dt)}; "
                    f"offering {len(alternatives)} alternatives"
                )
                return BookingResult(alternatives=alternatives)

            booking = await self._reserve_and_book(db, chosen, customer_id, start_dt, end_dt, now)

        await self.publisher.publish("booking.created", booking_event_data(booking))
        return BookingResult(booking=booking)

    async def book_alternative_slot(self, customer_id: str, slot_id: str, requested_duration_ms) -> Booking:
        async with self.session_factory() as db:
            await resolve_user(db, customer_id, UserRole.CUSTOMER)

            try:
                slot = await slots.find_by_id(db, slot_id)
            except NotFoundError:
                raise NotFoundError("Availability slot not found or already booked") from None
            if slot.reserved:
                raise NotFoundError("Availability slot not found or already booked")

            try:
                duration = timedelta(milliseconds=float(requested_duration_ms))
            except (TypeError, ValueError, OverflowError):
                raise InvalidInputError("Duration must be a number of milliseconds") from None
            if duration <= timedelta(0):
                raise InvalidRangeError("Duration must be positive")

            start_dt = as_utc(slot.start_time)
            end_dt = start_dt + duration
            if end_dt > as_utc(slot.end_time):
                raise InvalidRangeError("Requested duration exceeds available slot time")

            now = self.clock()
            validate_time_range(start_dt, end_dt, now=now)

            booking = await self._reserve_and_book(db, slot, customer_id, start_dt, end_dt, now)

        await self.publisher.publish("booking.created", booking_event_data(booking))
        return booking

    async def _reserve_and_book(self, db: AsyncSession, slot: AvailabilitySlot, customer_id, start_dt, end_dt, now) -> Booking:
        # rollback expires everything loaded in this session, so read ids first
        slot_id, provider_id = slot.id, slot.provider_id
        try:
            await slots.reserve(db, slot_id, expected_version=slot.version)
        except ConflictError:
            await db.rollback()
            print(f"[{SERVICE_NAME}] lost reservation race for slot {slot_id}")
            raise

        booking = Booking(
            customer_id=customer_id,
            provider_id=provider_id,
            slot_id=slot_id,
            start_time=start_dt,
            end_time=end_dt,
            status=BookingStatus.CONFIRMED.value,
            created_at=now,
            updated_at=now,
        )
        db.add(booking)
        await db.commit()
        return booking

    # ---- status ----

    async def update_status(self, booking_id: str, new_status, requester_id: str) -> Booking:
        target = _coerce_status(new_status)

        async with self.session_factory() as db:
            booking = await self._load(db, booking_id, requester_id)
            current = BookingStatus(booking.status)

            if current == BookingStatus.CANCELLED:
                raise InvalidTransitionError("Cannot update cancelled booking")
            if target == current:
                raise InvalidTransitionError("Booking already has this status")
            if target not in ALLOWED_TRANSITIONS[current]:
                raise InvalidTransitionError(f"Cannot move booking from {current.value} to {target.value}")

            booking.status = target.value
            booking.updated_at = self.clock()

            if target == BookingStatus.CANCELLED and booking.slot_id:
                await slots.release(db, booking.slot_id)

            await db.commit()

        await self.publisher.publish(
            "booking.status_changed",
            {**booking_event_data(booking), "previous_status": current.value},
        )
        return booking

    # ---- queries ----

    async def _load(self, db: AsyncSession, booking_id: str, requester_id: str | None) -> Booking:
        stmt = select(Booking).where(Booking.id == booking_id)
        if requester_id:
            stmt = stmt.where(
                or_(Booking.customer_id == requester_id, Booking.provider_id == requester_id)
            )
        res = await db.execute(stmt)
        booking = res.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    async def find_booking_by_id(self, booking_id: str, requester_id: str | None = None) -> Booking:
        """Without requester_id the lookup is unscoped (internal/admin use)."""
        async with self.session_factory() as db:
            return await self._load(db, booking_id, requester_id)

    async def find_user_bookings(
        self,
        user_id: str,
        status=None,
        start_date=None,
        end_date=None,
    ) -> list[Booking]:
        stmt = select(Booking).where(
            or_(Booking.customer_id == user_id, Booking.provider_id == user_id)
        )
        if status:
            stmt = stmt.where(Booking.status == _coerce_status(status).value)
        if start_date:
            stmt = stmt.where(Booking.start_time >= parse_timestamp(start_date))
        if end_date:
            stmt = stmt.where(Booking.end_time <= parse_timestamp(end_date))

        async with self.session_factory() as db:
            res = await db.execute(stmt.order_by(Booking.start_time.asc()))
            return list(res.scalars().all())
