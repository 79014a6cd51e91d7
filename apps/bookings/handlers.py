"""
Message bus handlers of the bookings app

Registered once from BookingsConfig.ready().
"""

import logging

from shared.application.message_bus import MessageBus, message_bus
from apps.bookings.application.command_handlers import ReservationResult, ReserveCommand
from apps.bookings.domain.events import BookingCreated, RefundReconciliationRequired

logger = logging.getLogger(__name__)

_registered = False


def handle_reserve(command: ReserveCommand) -> ReservationResult:
    from apps.bookings.bootstrap import build_coordinator

    return build_coordinator().reserve(command)


def log_booking_created(event: BookingCreated):
    logger.info(
        f"Booking {event.booking_id} created: listing {event.listing_id}, "
        f"tenant {event.tenant_id}, {event.dates}, total {event.total_price}"
    )


def schedule_refund(event: RefundReconciliationRequired):
    from apps.bookings.tasks import refund_reconciliation

    logger.warning(
        f"Scheduling refund of {event.amount} for charge {event.charge_id} "
        f"(reconciliation {event.reconciliation_id})"
    )
    refund_reconciliation.delay(str(event.reconciliation_id))


def register_handlers(bus: MessageBus = message_bus):
    global _registered
    if _registered and bus is message_bus:
        return

    bus.register_command_handler(ReserveCommand, handle_reserve)
    bus.register_event_handler(BookingCreated, log_booking_created)
    bus.register_event_handler(RefundReconciliationRequired, schedule_refund)

    if bus is message_bus:
        _registered = True
