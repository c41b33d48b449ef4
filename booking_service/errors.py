class BookingError(Exception):
    """Base class for errors the booking engine reports to its callers."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(BookingError):
    status_code = 400


class InvalidRangeError(BookingError):
    status_code = 400


class PastScheduleError(BookingError):
    status_code = 400


class NotFoundError(BookingError):
    status_code = 404


class ConflictError(BookingError):
    status_code = 409


class InvalidTransitionError(BookingError):
    status_code = 400


class NoCandidatesError(BookingError):
    """
    Raised by the assignment engine when nothing covers the requested interval.
    The lifecycle manager turns it into an alternatives lookup; it never reaches
    the transport.
    """

    status_code = 404
