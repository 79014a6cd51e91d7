"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore

from apps.bookings.application.ports import ChargeError
from apps.payments.gateway import StripeChargeGateway

from .models import RefundReconciliation

logger = logging.getLogger(__name__)


def _max_attempts() -> int:
    return getattr(settings, "BOOKING_REFUND_MAX_ATTEMPTS", 5)


def attempt_refund(reconciliation_id, gateway=None) -> str:
    """
    Try to refund one pending reconciliation.

    Returns the resulting status. A record that exhausts its attempts is
    marked FAILED and left for manual handling.
    """
    gateway = gateway or StripeChargeGateway.from_settings()

    with transaction.atomic():
        try:
            record = RefundReconciliation.objects.select_for_update().get(pk=reconciliation_id)
        except RefundReconciliation.DoesNotExist:
            logger.error(f"Refund reconciliation {reconciliation_id} does not exist")
            return "missing"

        if record.status != RefundReconciliation.Status.PENDING:
            return record.status

        record.attempts += 1
        try:
            record.refund_id = gateway.refund(
                charge_id=record.charge_id,
                amount=record.amount,
                host_payout_token=record.host_payout_token,
            )
        except ChargeError as e:
            record.last_error = str(e)
            if record.attempts >= _max_attempts():
                record.status = RefundReconciliation.Status.FAILED
                logger.critical(
                    f"Giving up on refund of charge {record.charge_id} ({record.amount}) "
                    f"after {record.attempts} attempts: {e}"
                )
            else:
                logger.warning(
                    f"Refund of charge {record.charge_id} failed "
                    f"(attempt {record.attempts}/{_max_attempts()}): {e}"
                )
        else:
            record.status = RefundReconciliation.Status.REFUNDED
            record.last_error = ""
            logger.info(f"Refunded charge {record.charge_id} as {record.refund_id}")

        record.save(update_fields=["status", "attempts", "refund_id", "last_error", "updated_at"])
        return record.status


@shared_task(name="bookings.refund_reconciliation")
def refund_reconciliation(reconciliation_id: str) -> str:
    """Refund a charge whose booking could not be stored."""
    return attempt_refund(reconciliation_id)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="bookings.process_refund_reconciliations")
def process_refund_reconciliations() -> dict[str, int]:
    """
    Retry every pending refund reconciliation.

    Returns:
        dict: counts of records per resulting status
    """
    gateway = StripeChargeGateway.from_settings()
    counts = {"refunded": 0, "pending": 0, "failed": 0}

    pending_ids = list(
        RefundReconciliation.objects.filter(
            status=RefundReconciliation.Status.PENDING,
        ).values_list("pk", flat=True)
    )

    for reconciliation_id in pending_ids:
        status = attempt_refund(reconciliation_id, gateway)
        if status in counts:
            counts[status] += 1

    if pending_ids:
        logger.info(f"Processed {len(pending_ids)} refund reconciliations: {counts}")

    return counts
