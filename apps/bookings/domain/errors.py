"""Domain exceptions for the booking ledger."""

from datetime import date


class BookingError(Exception):
    """Base class for booking domain errors."""


class DateConflictError(BookingError):
    """Raised when a day of the requested stay is already booked."""

    def __init__(self, conflict_date: date):
        self.conflict_date = conflict_date
        super().__init__(f"Listing already booked for {conflict_date.isoformat()}")


class InvalidPriceError(BookingError):
    """Raised for a nightly price that is not a positive amount."""
