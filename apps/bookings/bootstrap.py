"""Wiring of the reservation coordinator from Django settings."""

from decimal import Decimal

from django.conf import settings  # type: ignore

from apps.bookings.application.command_handlers import ReservationCoordinator
from apps.bookings.application.ports import SystemClock
from apps.bookings.infrastructure.listing_store import DjangoListingStore
from apps.payments.gateway import StripeChargeGateway


def build_coordinator() -> ReservationCoordinator:
    return ReservationCoordinator(
        DjangoListingStore(),
        StripeChargeGateway.from_settings(),
        SystemClock(),
        horizon_days=settings.BOOKING_HORIZON_DAYS,
        commit_retries=settings.BOOKING_COMMIT_RETRIES,
        charge_timeout=settings.BOOKING_CHARGE_TIMEOUT,
        application_fee_rate=Decimal(str(settings.BOOKING_APPLICATION_FEE_RATE)),
    )
