"""
Booking Command Handlers

The reservation use case: validate, charge, commit.

Commands:
- ReserveCommand: book a listing for a date range and pay for it

Each attempt moves through
    REQUESTED -> VALIDATED -> CHARGED -> COMMITTED
and stops early in one of
    REJECTED       request is invalid, nothing external happened
    CHARGE_FAILED  card declined/errored/timed out, nothing written
    COMMIT_FAILED  money taken but the booking could not be stored;
                   a refund obligation is recorded
"""

from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from functools import partial
from typing import Any, Optional
from uuid import UUID, uuid4
import logging
import threading

from django.db import close_old_connections  # type: ignore

from shared.domain.value_objects import DateRange
from apps.bookings.application.ports import (
    ChargeError,
    ChargeGateway,
    ChargeReceipt,
    Clock,
    ListingStore,
    ListingStoreError,
    RefundObligation,
    SystemClock,
)
from apps.bookings.domain.entities import Booking, ListingSnapshot
from apps.bookings.domain.errors import DateConflictError, InvalidPriceError
from apps.bookings.domain.events import BookingCreated, RefundReconciliationRequired
from apps.bookings.domain.pricing import DEFAULT_APPLICATION_FEE_RATE, application_fee, compute_total
from apps.bookings.domain.validation import (
    DEFAULT_HORIZON_DAYS,
    BookingValidator,
    RejectionReason,
    ValidationOutcome,
)

logger = logging.getLogger(__name__)

_charge_executor = ThreadPoolExecutor(max_workers=16, thread_name_prefix='booking-charge')


# ===== Commands =====

@dataclass(frozen=True)
class ReserveCommand:
    """Book a listing for a stay and charge the guest"""
    listing_id: Any
    tenant_id: Any
    check_in: date
    check_out: date
    payment_source: str

    @property
    def dates(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)


# ===== Results =====

class ReservationStatus(Enum):
    REQUESTED = 'requested'
    VALIDATED = 'validated'
    CHARGED = 'charged'
    COMMITTED = 'committed'
    REJECTED = 'rejected'
    CHARGE_FAILED = 'charge_failed'
    COMMIT_FAILED = 'commit_failed'


@dataclass(frozen=True)
class ReservationResult:
    """
    Outcome of one reservation attempt

    Exactly one of these holds:
    - COMMITTED: `booking` is set
    - REJECTED: `reason` (and `conflict_date` for date conflicts) is set
    - CHARGE_FAILED: `error` describes the decline/timeout
    - COMMIT_FAILED: `error` is set; `reconciliation_id` points at the
      refund obligation when a charge had gone through, and `conflict`
      tells a competing change to the listing apart from a store failure
    """
    status: ReservationStatus
    booking: Optional[Booking] = None
    reason: Optional[RejectionReason] = None
    conflict_date: Optional[date] = None
    error: str = ''
    charge_declined: bool = False
    reconciliation_id: Any = None
    conflict: bool = False

    @property
    def ok(self) -> bool:
        return self.status is ReservationStatus.COMMITTED


# ===== Command Handlers =====

class ReservationCoordinator:
    """
    Handler for ReserveCommand

    Double booking prevention is optimistic:
    1. Load the listing snapshot with its version
    2. Validate and price (no external calls for invalid requests)
    3. Charge once, bounded by charge_timeout
    4. Commit booking + availability + host income only if the listing
       version is unchanged
    5. On a version conflict reload, re-validate and re-price, then
       retry the commit without charging again

    No lock is held while the card processor is being called.
    """

    def __init__(
        self,
        store: ListingStore,
        gateway: ChargeGateway,
        clock: Optional[Clock] = None,
        *,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        commit_retries: int = 3,
        charge_timeout: float = 30.0,
        application_fee_rate: Decimal = DEFAULT_APPLICATION_FEE_RATE,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        if commit_retries < 1:
            raise ValueError("commit_retries must be at least 1")
        if charge_timeout <= 0:
            raise ValueError("charge_timeout must be positive")

        self.store = store
        self.gateway = gateway
        self.clock = clock or SystemClock()
        self.validator = BookingValidator(horizon_days)
        self.commit_retries = commit_retries
        self.charge_timeout = charge_timeout
        self.application_fee_rate = application_fee_rate
        self._executor = executor or _charge_executor

    def __call__(self, command: ReserveCommand) -> ReservationResult:
        return self.reserve(command)

    def reserve(self, command: ReserveCommand) -> ReservationResult:
        """
        Handle a reservation request

        Returns a ReservationResult for every expected outcome.

        Raises:
            ListingNotFoundError: if the listing does not exist
        """
        dates = command.dates
        today = self.clock.today()
        logger.info(
            f"Reserving listing {command.listing_id} for tenant {command.tenant_id}, "
            f"dates {command.check_in} - {command.check_out}"
        )

        try:
            snapshot = self.store.load(command.listing_id)
        except ListingStoreError as e:
            logger.error(f"Could not load listing {command.listing_id}: {e}")
            return ReservationResult(ReservationStatus.COMMIT_FAILED, error=str(e))

        outcome = self.validator.validate(command.tenant_id, snapshot, dates, today)
        if not outcome.accepted:
            return self._reject(command, outcome)

        try:
            total = compute_total(snapshot.nightly_price, dates)
        except InvalidPriceError as e:
            logger.warning(f"Listing {command.listing_id} has an invalid price: {e}")
            return ReservationResult(ReservationStatus.REJECTED, reason=RejectionReason.INVALID_PRICE, error=str(e))

        self._log_state(command, ReservationStatus.VALIDATED, f"total {total}")

        booking_id = uuid4()
        try:
            receipt = self._charge(command, snapshot, total, booking_id)
        except ChargeError as e:
            logger.warning(f"Charge failed for listing {command.listing_id}, tenant {command.tenant_id}: {e}")
            return ReservationResult(
                ReservationStatus.CHARGE_FAILED,
                error=str(e),
                charge_declined=e.declined,
            )

        self._log_state(command, ReservationStatus.CHARGED, f"charge {receipt.charge_id}")

        return self._commit(command, snapshot, today, total, receipt, booking_id)

    # ----- steps -----

    def _reject(self, command: ReserveCommand, outcome: ValidationOutcome) -> ReservationResult:
        logger.info(
            f"Reservation of listing {command.listing_id} by tenant {command.tenant_id} "
            f"rejected: {outcome.reason.value}"
        )
        return ReservationResult(
            ReservationStatus.REJECTED,
            reason=outcome.reason,
            conflict_date=outcome.conflict_date,
        )

    def _charge(
        self,
        command: ReserveCommand,
        snapshot: ListingSnapshot,
        total: int,
        booking_id: UUID,
    ) -> ChargeReceipt:
        """
        Call the charge gateway exactly once

        The booking id is the idempotency key, so the processor never
        takes money twice for one booking.

        A timeout is reported as a failed charge. A charge still queued
        at that point is cancelled and never reaches the processor; one
        already in flight that succeeds later gets a refund obligation.
        """
        future = self._executor.submit(
            self.gateway.charge,
            amount=total,
            payment_source=command.payment_source,
            host_payout_token=snapshot.host_payout_token,
            application_fee=application_fee(total, self.application_fee_rate),
            idempotency_key=f"booking-{booking_id}",
        )
        try:
            return future.result(timeout=self.charge_timeout)
        except FutureTimeoutError:
            if future.cancel():
                logger.warning(f"Charge for listing {command.listing_id} cancelled before it was sent")
            else:
                future.add_done_callback(
                    partial(self._on_late_charge, command, snapshot, threading.get_ident())
                )
            raise ChargeError(f"Charge timed out after {self.charge_timeout}s") from None

    def _commit(
        self,
        command: ReserveCommand,
        snapshot: ListingSnapshot,
        today: date,
        total: int,
        receipt: ChargeReceipt,
        booking_id: UUID,
    ) -> ReservationResult:
        dates = command.dates
        booking = Booking(
            id=booking_id,
            listing_id=command.listing_id,
            tenant_id=command.tenant_id,
            dates=dates,
            total_price=total,
            charge_id=receipt.charge_id,
        )

        for attempt in range(1, self.commit_retries + 1):
            try:
                availability = snapshot.availability.with_range_booked(dates)
            except DateConflictError as e:
                return self._fail_commit(
                    command, snapshot, receipt, str(e),
                    reason=RejectionReason.DATE_CONFLICT, conflict_date=e.conflict_date,
                )

            event = BookingCreated(
                aggregate_id=command.listing_id,
                booking_id=booking.id,
                listing_id=command.listing_id,
                tenant_id=command.tenant_id,
                host_id=snapshot.host_id,
                dates=dates,
                total_price=total,
            )
            try:
                committed = self.store.commit(snapshot, availability, booking, [event])
            except ListingStoreError as e:
                return self._fail_commit(command, snapshot, receipt, f"Listing store failed: {e}", conflict=False)

            if committed:
                self._log_state(command, ReservationStatus.COMMITTED, f"booking {booking.id}")
                return ReservationResult(ReservationStatus.COMMITTED, booking=booking)

            logger.warning(
                f"Version conflict committing listing {command.listing_id} "
                f"(version {snapshot.version}), attempt {attempt}/{self.commit_retries}"
            )
            if attempt == self.commit_retries:
                break

            try:
                snapshot = self.store.load(command.listing_id)
            except (ListingStoreError, LookupError) as e:
                return self._fail_commit(
                    command, snapshot, receipt, f"Could not reload listing: {e}", conflict=False,
                )

            outcome = self.validator.validate(command.tenant_id, snapshot, dates, today)
            if not outcome.accepted:
                return self._fail_commit(
                    command, snapshot, receipt,
                    f"Request no longer valid: {outcome.reason.value}",
                    reason=outcome.reason, conflict_date=outcome.conflict_date,
                )
            try:
                repriced = compute_total(snapshot.nightly_price, dates)
            except InvalidPriceError as e:
                return self._fail_commit(command, snapshot, receipt, str(e), reason=RejectionReason.INVALID_PRICE)
            if repriced != total:
                return self._fail_commit(
                    command, snapshot, receipt,
                    f"Price changed from {total} to {repriced} during reservation",
                )

        return self._fail_commit(
            command, snapshot, receipt,
            f"Listing kept changing, gave up after {self.commit_retries} attempts",
        )

    def _fail_commit(
        self,
        command: ReserveCommand,
        snapshot: ListingSnapshot,
        receipt: ChargeReceipt,
        message: str,
        *,
        reason: Optional[RejectionReason] = None,
        conflict_date: Optional[date] = None,
        conflict: bool = True,
    ) -> ReservationResult:
        logger.error(
            f"Commit failed for listing {command.listing_id}, tenant {command.tenant_id} "
            f"after charge {receipt.charge_id} ({receipt.amount}): {message}"
        )
        reconciliation_id = self._record_obligation(command, snapshot, receipt, message)
        if reconciliation_id is None:
            message = f"{message}; refund obligation could not be recorded"

        return ReservationResult(
            ReservationStatus.COMMIT_FAILED,
            reason=reason,
            conflict_date=conflict_date,
            error=message,
            reconciliation_id=reconciliation_id,
            conflict=conflict,
        )

    def _record_obligation(
        self,
        command: ReserveCommand,
        snapshot: ListingSnapshot,
        receipt: ChargeReceipt,
        message: str,
    ) -> Optional[UUID]:
        obligation = RefundObligation(
            listing_id=command.listing_id,
            tenant_id=command.tenant_id,
            host_payout_token=snapshot.host_payout_token,
            charge_id=receipt.charge_id,
            amount=receipt.amount,
            reason=message,
        )
        event = RefundReconciliationRequired(
            aggregate_id=command.listing_id,
            reconciliation_id=obligation.id,
            listing_id=command.listing_id,
            tenant_id=command.tenant_id,
            charge_id=receipt.charge_id,
            amount=receipt.amount,
            reason=message,
        )
        try:
            return self.store.record_refund_obligation(obligation, [event])
        except ListingStoreError as e:
            # Last resort: the log line is the only trace of the obligation
            logger.critical(
                f"REFUND REQUIRED but not recorded: charge {receipt.charge_id}, "
                f"amount {receipt.amount}, listing {command.listing_id}, "
                f"tenant {command.tenant_id}, reason: {message}. Store error: {e}",
                exc_info=True,
            )
            return None

    def _on_late_charge(
        self,
        command: ReserveCommand,
        snapshot: ListingSnapshot,
        caller_thread: int,
        future: Future,
    ):
        """
        Record a refund for a charge that finished after its timeout

        Usually runs on an executor thread, whose database connections
        are closed afterwards. If the charge completed just as the
        timeout fired, it runs on the caller's thread and leaves the
        request's connection alone.
        """
        try:
            if future.cancelled() or future.exception() is not None:
                return
            receipt = future.result()
            logger.error(
                f"Charge {receipt.charge_id} for listing {command.listing_id} "
                f"succeeded after the reservation had timed out"
            )
            self._record_obligation(command, snapshot, receipt, "Charge completed after timeout")
        finally:
            if threading.get_ident() != caller_thread:
                close_old_connections()

    def _log_state(self, command: ReserveCommand, state: ReservationStatus, detail: str = ''):
        logger.debug(
            f"Reservation of listing {command.listing_id} by tenant {command.tenant_id}: "
            f"{state.value} {detail}".rstrip()
        )
