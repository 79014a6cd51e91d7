"""
In-memory listing store

Same contract as the Django store, held in process memory. Commits
are a compare-and-swap on the listing version under one lock, so
concurrent reservations behave exactly as against the database.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

from shared.application.message_bus import MessageBus
from shared.domain.base import DomainEvent
from apps.bookings.application.ports import (
    ListingNotFoundError,
    ListingStoreError,
    RefundObligation,
)
from apps.bookings.domain.availability import AvailabilityIndex
from apps.bookings.domain.entities import Booking, ListingSnapshot

logger = logging.getLogger(__name__)


@dataclass
class _User:
    payout_token: str = ''
    income: int = 0
    booking_ids: List[UUID] = field(default_factory=list)


@dataclass
class _Listing:
    host_id: Any
    price: int
    availability: AvailabilityIndex
    version: int = 0
    booking_ids: List[UUID] = field(default_factory=list)


class InMemoryListingStore:
    """
    Usage:
        store = InMemoryListingStore()
        store.add_user('host', payout_token='acct_1')
        store.add_listing('loft', host_id='host', price=100)
    """

    def __init__(self, bus: Optional[MessageBus] = None, lock_timeout: float = 5.0):
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout
        self._bus = bus
        self._users: Dict[Any, _User] = {}
        self._listings: Dict[Any, _Listing] = {}
        self.bookings: Dict[UUID, Booking] = {}
        self.refund_obligations: Dict[UUID, RefundObligation] = {}

    # ----- seeding and inspection -----

    def add_user(self, user_id: Any, payout_token: str = ''):
        self._users[user_id] = _User(payout_token=payout_token)

    def add_listing(self, listing_id: Any, host_id: Any, price: int, availability: Optional[AvailabilityIndex] = None):
        if host_id not in self._users:
            self.add_user(host_id)
        self._listings[listing_id] = _Listing(
            host_id=host_id,
            price=price,
            availability=availability or AvailabilityIndex(),
        )

    def set_price(self, listing_id: Any, price: int):
        with self._locked():
            listing = self._listings[listing_id]
            listing.price = price
            listing.version += 1

    def availability(self, listing_id: Any) -> AvailabilityIndex:
        return self._listings[listing_id].availability

    def version(self, listing_id: Any) -> int:
        return self._listings[listing_id].version

    def listing_bookings(self, listing_id: Any) -> List[UUID]:
        return list(self._listings[listing_id].booking_ids)

    def user_bookings(self, user_id: Any) -> List[UUID]:
        return list(self._users[user_id].booking_ids)

    def income(self, user_id: Any) -> int:
        return self._users[user_id].income

    # ----- ListingStore -----

    def load(self, listing_id: Any) -> ListingSnapshot:
        with self._locked():
            listing = self._listings.get(listing_id)
            if listing is None:
                raise ListingNotFoundError(f"Listing {listing_id} not found")
            return ListingSnapshot(
                listing_id=listing_id,
                host_id=listing.host_id,
                nightly_price=listing.price,
                availability=listing.availability,
                version=listing.version,
                host_payout_token=self._users[listing.host_id].payout_token,
            )

    def commit(
        self,
        snapshot: ListingSnapshot,
        availability: AvailabilityIndex,
        booking: Booking,
        events: Iterable[DomainEvent] = (),
    ) -> bool:
        with self._locked():
            listing = self._listings[snapshot.listing_id]
            if listing.version != snapshot.version:
                logger.debug(f"Listing {snapshot.listing_id} at version {listing.version}, snapshot has {snapshot.version}")
                return False

            tenant = self._users.setdefault(booking.tenant_id, _User())
            listing.availability = availability
            listing.version += 1
            listing.booking_ids.append(booking.id)
            tenant.booking_ids.append(booking.id)
            self._users[listing.host_id].income += booking.total_price
            self.bookings[booking.id] = booking

        self._publish(events)
        return True

    def record_refund_obligation(
        self,
        obligation: RefundObligation,
        events: Iterable[DomainEvent] = (),
    ) -> Any:
        with self._locked():
            self.refund_obligations[obligation.id] = obligation
        self._publish(events)
        return obligation.id

    # ----- helpers -----

    @contextmanager
    def _locked(self):
        if not self._lock.acquire(timeout=self._lock_timeout):
            raise ListingStoreError(f"Listing store busy for more than {self._lock_timeout}s")
        try:
            yield
        finally:
            self._lock.release()

    def _publish(self, events: Iterable[DomainEvent]):
        events = list(events)
        if self._bus is not None and events:
            self._bus.publish_events(events)

