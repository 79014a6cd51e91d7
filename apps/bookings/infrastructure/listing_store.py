"""
Django listing store

Optimistic concurrency on the listings table: every commit is an
UPDATE ... WHERE id = %s AND version = %s. A listing that changed since
it was loaded updates zero rows and the whole transaction is abandoned,
so the booking row, the availability JSON and the host income are
written together or not at all.

Statement timeouts are configured on the database connection
(see DATABASES in settings); a timed-out query surfaces as a
DatabaseError and is reported as ListingStoreError.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from django.contrib.auth import get_user_model  # type: ignore
from django.db import DatabaseError  # type: ignore
from django.db.models import F  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.base import DomainEvent
from apps.bookings.application.ports import (
    ListingNotFoundError,
    ListingStoreError,
    RefundObligation,
)
from apps.bookings.domain.availability import AvailabilityIndex
from apps.bookings.domain.entities import Booking, ListingSnapshot
from apps.bookings.models import Booking as BookingModel, RefundReconciliation
from apps.listings.models import Listing

logger = logging.getLogger(__name__)


class DjangoListingStore:
    """ListingStore backed by the Django ORM"""

    def load(self, listing_id: Any) -> ListingSnapshot:
        try:
            listing = Listing.objects.select_related("host").get(pk=listing_id)
        except Listing.DoesNotExist:
            raise ListingNotFoundError(f"Listing {listing_id} not found")
        except DatabaseError as e:
            raise ListingStoreError(f"Could not load listing {listing_id}: {e}") from e

        return listing.to_snapshot()

    def commit(
        self,
        snapshot: ListingSnapshot,
        availability: AvailabilityIndex,
        booking: Booking,
        events: Iterable[DomainEvent] = (),
    ) -> bool:
        User = get_user_model()
        try:
            with DjangoUnitOfWork() as uow:
                updated = Listing.objects.filter(
                    pk=snapshot.listing_id,
                    version=snapshot.version,
                ).update(
                    availability=availability.to_dict(),
                    version=F("version") + 1,
                )
                if not updated:
                    logger.info(
                        f"Listing {snapshot.listing_id} moved past version {snapshot.version}, "
                        f"booking {booking.id} not written"
                    )
                    return False

                BookingModel.from_domain(booking).save(force_insert=True)
                User.objects.filter(pk=snapshot.host_id).update(
                    income=F("income") + booking.total_price
                )
                uow.add_events(events)
        except DatabaseError as e:
            raise ListingStoreError(
                f"Could not commit booking {booking.id} for listing {snapshot.listing_id}: {e}"
            ) from e

        logger.info(
            f"Committed booking {booking.id} on listing {snapshot.listing_id} "
            f"(version {snapshot.version} -> {snapshot.version + 1})"
        )
        return True

    def record_refund_obligation(
        self,
        obligation: RefundObligation,
        events: Iterable[DomainEvent] = (),
    ) -> Any:
        try:
            with DjangoUnitOfWork() as uow:
                record = RefundReconciliation.objects.create(
                    id=obligation.id,
                    listing_id=obligation.listing_id,
                    tenant_id=obligation.tenant_id,
                    charge_id=obligation.charge_id,
                    amount=obligation.amount,
                    host_payout_token=obligation.host_payout_token,
                    reason=obligation.reason,
                )
                uow.add_events(events)
        except DatabaseError as e:
            raise ListingStoreError(f"Could not record refund for charge {obligation.charge_id}: {e}") from e

        logger.warning(f"Recorded refund obligation {record.pk} for charge {obligation.charge_id}")
        return record.pk
