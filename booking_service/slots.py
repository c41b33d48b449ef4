from datetime import datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .clock import as_utc
from .errors import ConflictError, NotFoundError
from .models import AvailabilitySlot


async def find_by_id(db: AsyncSession, slot_id: str) -> AvailabilitySlot:
    res = await db.execute(select(AvailabilitySlot).where(AvailabilitySlot.id == slot_id))
    slot = res.scalar_one_or_none()
    if not slot:
        raise NotFoundError("Availability slot not found")
    return slot


async def find_covering_free_slots(db: AsyncSession, start: datetime, end: datetime) -> list[AvailabilitySlot]:
    """
    Free slots of any provider that fully contain [start, end]. Unordered.
    """
    res = await db.execute(
        select(AvailabilitySlot).where(
            AvailabilitySlot.reserved.is_(False),
            AvailabilitySlot.start_time <= start,
            AvailabilitySlot.end_time >= end,
        )
    )
    return list(res.scalars().all())


async def find_free_slots_in_window(
    db: AsyncSession,
    window_start: datetime,
    window_end: datetime,
    min_duration: timedelta,
) -> list[AvailabilitySlot]:
    """
    Free slots lying fully inside [window_start, window_end] that last at least
    min_duration. Duration is filtered here rather than in SQL so the query stays
    portable across backends.
    """
    res = await db.execute(
        select(AvailabilitySlot).where(
            AvailabilitySlot.reserved.is_(False),
            AvailabilitySlot.start_time >= window_start,
            AvailabilitySlot.end_time <= window_end,
        )
    )
    return [
        s for s in res.scalars().all()
        if as_utc(s.end_time) - as_utc(s.start_time) >= min_duration
    ]


async def _current_state(db: AsyncSession, slot_id: str):
    res = await db.execute(
        select(AvailabilitySlot.reserved, AvailabilitySlot.version).where(AvailabilitySlot.id == slot_id)
    )
    return res.one_or_none()


async def _compare_and_set(
    db: AsyncSession,
    slot_id: str,
    expected_reserved: bool,
    expected_version: int | None,
) -> bool:
    conditions = [
        AvailabilitySlot.id == slot_id,
        AvailabilitySlot.reserved.is_(expected_reserved),
    ]
    if expected_version is not None:
        conditions.append(AvailabilitySlot.version == expected_version)

    stmt = (
        update(AvailabilitySlot)
        .where(*conditions)
        .values(reserved=not expected_reserved, version=AvailabilitySlot.version + 1)
        .execution_options(synchronize_session=False)
    )
    res = await db.execute(stmt)
    return res.rowcount == 1


async def reserve(db: AsyncSession, slot_id: str, expected_version: int | None = None) -> None:
    """
    Atomically flip a free slot to reserved. With expected_version the update
    only applies if nobody touched the slot since it was read; a second
    concurrent reserve therefore affects zero rows and gets ConflictError.
    Does not commit.
    """
    if await _compare_and_set(db, slot_id, False, expected_version):
        return

    state = await _current_state(db, slot_id)
    if state is None:
        raise NotFoundError("Availability slot not found")
    if state.reserved:
        raise ConflictError("Slot is already booked")
    raise ConflictError("Slot was modified concurrently")


async def release(db: AsyncSession, slot_id: str) -> None:
    """Flip a reserved slot back to free. Does not commit."""
    if await _compare_and_set(db, slot_id, True, None):
        return

    if await _current_state(db, slot_id) is None:
        raise NotFoundError("Availability slot not found")
    raise ConflictError("Slot is already available")
