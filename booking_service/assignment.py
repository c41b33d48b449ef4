from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from . import slots
from .clock import as_utc
from .config import ALTERNATIVE_WINDOW_HOURS, MAX_ALTERNATIVES
from .errors import NoCandidatesError
from .models import AvailabilitySlot
from .scoring import ProviderScorer


async def select_best(
    db: AsyncSession,
    candidates: list[AvailabilitySlot],
    scorer: ProviderScorer,
) -> AvailabilitySlot:
    """
    Pick the slot whose provider scores highest; equal scores go to the
    earliest start. A lone candidate is returned without scoring.
    """
    if not candidates:
        raise NoCandidatesError("No available painters")

    if len(candidates) == 1:
        return candidates[0]

    scored = []
    for slot in candidates:
        scored.append((await scorer.score(db, slot.provider, slot), slot))

    scored.sort(key=lambda x: (-x[0], as_utc(x[1].start_time)))
    return scored[0][1]


async def find_alternatives(
    db: AsyncSession,
    requested_start: datetime,
    requested_end: datetime,
    window_hours: float = ALTERNATIVE_WINDOW_HOURS,
    limit: int = MAX_ALTERNATIVES,
    not_before: datetime | None = None,
) -> list[AvailabilitySlot]:
    """
    Free slots within window_hours either side of the request, long enough for
    the requested duration, closest start first. An empty list is a normal result.
    """
    requested_start = as_utc(requested_start)
    requested_end = as_utc(requested_end)
    duration = requested_end - requested_start
    window = timedelta(hours=window_hours)

    found = await slots.find_free_slots_in_window(
        db,
        requested_start - window,
        requested_end + window,
        duration,
    )

    if not_before is not None:
        found = [s for s in found if as_utc(s.start_time) >= as_utc(not_before)]

    found.sort(key=lambda s: abs(as_utc(s.start_time) - requested_start))
    return found[:limit]
