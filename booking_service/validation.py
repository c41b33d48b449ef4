from datetime import datetime

from dateutil import parser

from .clock import as_utc
from .errors import InvalidInputError, InvalidRangeError, PastScheduleError


def parse_timestamp(value) -> datetime:
    """
    Accepts an ISO-8601 string or a datetime; naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError("Invalid date format. Please provide valid UTC timestamps.")
    try:
        return as_utc(parser.isoparse(value.strip()))
    except (ValueError, OverflowError):
        raise InvalidInputError("Invalid date format. Please provide valid UTC timestamps.") from None


def validate_time_range(start, end, now: datetime) -> tuple[datetime, datetime]:
    """
    Shared legality check for availability slots and bookings.

    Returns the parsed (start, end) pair in UTC. The order of checks matters:
    unparseable input is reported before ordering, ordering before past-ness.
    """
    start_dt = parse_timestamp(start)
    end_dt = parse_timestamp(end)

    if start_dt >= end_dt:
        raise InvalidRangeError("End time must be after start time")

    if start_dt < as_utc(now):
        raise PastScheduleError("Cannot schedule in the past")

    return start_dt, end_dt
