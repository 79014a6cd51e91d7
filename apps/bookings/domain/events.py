"""
Booking Domain Events

Published on the message bus after the transaction that produced
them commits.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


@dataclass(kw_only=True)
class BookingCreated(DomainEvent):
    """
    Event: a reservation was committed

    The listing's availability, the booking row and the host's income
    were all written in the same transaction.
    """
    booking_id: UUID
    listing_id: Any
    tenant_id: Any
    host_id: Any
    dates: DateRange
    total_price: int


@dataclass(kw_only=True)
class RefundReconciliationRequired(DomainEvent):
    """
    Event: money was taken but no booking was committed

    Triggers:
    - Refund attempt through the charge gateway (Celery task)
    """
    reconciliation_id: Any
    listing_id: Any
    tenant_id: Any
    charge_id: str
    amount: int
    reason: str
