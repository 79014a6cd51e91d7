"""
Booking request validation

BookingValidator decides whether a stay may be booked. It has no side
effects and reads no clock: the caller passes today's date in.

Rules are checked in a fixed order and the first failing rule wins:
1. check-out before check-in          -> INVALID_RANGE
2. requester is the host              -> SELF_BOOKING
3. host has no payout account         -> HOST_NOT_PAYABLE
4. check-in before today              -> CHECK_IN_IN_PAST
5. check-in/out beyond the horizon    -> BEYOND_BOOKING_HORIZON
6. a day of the stay is already taken -> DATE_CONFLICT
"""

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Any, Optional

from shared.domain.value_objects import DateRange
from apps.bookings.domain.entities import ListingSnapshot

DEFAULT_HORIZON_DAYS = 90


class RejectionReason(Enum):
    INVALID_RANGE = 'invalid_range'
    SELF_BOOKING = 'self_booking'
    HOST_NOT_PAYABLE = 'host_not_payable'
    CHECK_IN_IN_PAST = 'check_in_in_past'
    BEYOND_BOOKING_HORIZON = 'beyond_booking_horizon'
    DATE_CONFLICT = 'date_conflict'
    INVALID_PRICE = 'invalid_price'


@dataclass(frozen=True)
class ValidationOutcome:
    reason: Optional[RejectionReason] = None
    conflict_date: Optional[date] = None

    @property
    def accepted(self) -> bool:
        return self.reason is None

    @classmethod
    def accept(cls) -> 'ValidationOutcome':
        return cls()

    @classmethod
    def reject(cls, reason: RejectionReason, conflict_date: Optional[date] = None) -> 'ValidationOutcome':
        return cls(reason=reason, conflict_date=conflict_date)


class BookingValidator:
    """Pure accept/reject decision for a reservation request"""

    def __init__(self, horizon_days: int = DEFAULT_HORIZON_DAYS):
        if horizon_days < 0:
            raise ValueError("Booking horizon cannot be negative")
        self.horizon_days = horizon_days

    def validate(
        self,
        tenant_id: Any,
        listing: ListingSnapshot,
        dates: DateRange,
        today: date,
    ) -> ValidationOutcome:
        if not dates.is_ordered:
            return ValidationOutcome.reject(RejectionReason.INVALID_RANGE)

        if tenant_id == listing.host_id:
            return ValidationOutcome.reject(RejectionReason.SELF_BOOKING)

        if not listing.host_payable:
            return ValidationOutcome.reject(RejectionReason.HOST_NOT_PAYABLE)

        if dates.check_in < today:
            return ValidationOutcome.reject(RejectionReason.CHECK_IN_IN_PAST)

        horizon = today + timedelta(days=self.horizon_days)
        if dates.check_in > horizon or dates.check_out > horizon:
            return ValidationOutcome.reject(RejectionReason.BEYOND_BOOKING_HORIZON)

        conflict = listing.availability.first_conflict(dates)
        if conflict is not None:
            return ValidationOutcome.reject(RejectionReason.DATE_CONFLICT, conflict)

        return ValidationOutcome.accept()
