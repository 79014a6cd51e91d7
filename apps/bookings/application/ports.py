"""
Ports of the reservation flow

The coordinator only talks to these interfaces. Django, the card
processor and the system clock plug in behind them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional, Protocol
from uuid import UUID, uuid4

from shared.domain.base import DomainEvent
from apps.bookings.domain.availability import AvailabilityIndex
from apps.bookings.domain.entities import Booking, ListingSnapshot


# ===== Errors =====

class ChargeError(Exception):
    """The card charge was declined, errored or timed out."""

    def __init__(self, message: str, *, declined: bool = False):
        self.declined = declined
        super().__init__(message)


class ListingStoreError(Exception):
    """The listing store failed or timed out."""


class ListingNotFoundError(LookupError):
    """No listing with the requested id."""


# ===== Data =====

@dataclass(frozen=True)
class ChargeReceipt:
    charge_id: str
    amount: int
    status: str = 'succeeded'


@dataclass(frozen=True)
class RefundObligation:
    """
    Money taken without a matching booking

    Written durably by the listing store and picked up by the refund
    reconciliation job.
    """
    listing_id: Any
    tenant_id: Any
    host_payout_token: str
    charge_id: str
    amount: int
    reason: str
    id: UUID = field(default_factory=uuid4)


# ===== Interfaces =====

class ChargeGateway(Protocol):
    def charge(
        self,
        *,
        amount: int,
        payment_source: str,
        host_payout_token: str,
        application_fee: int = 0,
        idempotency_key: Optional[str] = None,
    ) -> ChargeReceipt:
        """Charge the guest on behalf of the host. Raises ChargeError."""
        ...

    def refund(self, *, charge_id: str, amount: int, host_payout_token: str) -> str:
        """Refund a charge and return the refund id. Raises ChargeError."""
        ...


class ListingStore(Protocol):
    def load(self, listing_id: Any) -> ListingSnapshot:
        """Raises ListingNotFoundError or ListingStoreError."""
        ...

    def commit(
        self,
        snapshot: ListingSnapshot,
        availability: AvailabilityIndex,
        booking: Booking,
        events: Iterable[DomainEvent] = (),
    ) -> bool:
        """
        Persist the booking, the new availability and the host income
        as one unit, only if the listing still has snapshot.version.

        Returns False on a version conflict, in which case nothing was
        written. Raises ListingStoreError on infrastructure failure.
        """
        ...

    def record_refund_obligation(
        self,
        obligation: RefundObligation,
        events: Iterable[DomainEvent] = (),
    ) -> Any:
        """Durably store the obligation and return its id."""
        ...


class Clock(Protocol):
    def today(self) -> date:
        ...


class SystemClock:
    """UTC calendar date"""

    def today(self) -> date:
        return datetime.now(timezone.utc).date()


class FixedClock:
    def __init__(self, today: date):
        self._today = today

    def today(self) -> date:
        return self._today
