"""
Booking Domain Entities

- ListingSnapshot: the part of a listing the reservation flow reads
- Booking: a committed stay, immutable once created
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from shared.domain.value_objects import DateRange
from apps.bookings.domain.availability import AvailabilityIndex


@dataclass(frozen=True)
class ListingSnapshot:
    """
    Listing state as loaded at the start of a reservation attempt

    `version` is the optimistic concurrency stamp: a commit made from
    this snapshot only succeeds while the stored listing still carries
    the same version.
    """
    listing_id: Any
    host_id: Any
    nightly_price: int
    availability: AvailabilityIndex
    version: int
    host_payout_token: str = ''

    @property
    def host_payable(self) -> bool:
        """Host has connected a payout account"""
        return bool(self.host_payout_token)


@dataclass(frozen=True)
class Booking:
    """
    Booking entity

    Created only by a successful reservation commit and never changed
    afterwards. `total_price` is what was charged, in the smallest
    currency unit.
    """
    listing_id: Any
    tenant_id: Any
    dates: DateRange
    total_price: int
    charge_id: str = ''
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def nights(self) -> int:
        return self.dates.nights

    def __str__(self):
        return f"Booking {self.id} ({self.dates})"
