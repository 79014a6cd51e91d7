"""Tests for the reservation coordinator against the in-memory store."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta
from unittest import mock

from django.test import SimpleTestCase

from shared.application.message_bus import MessageBus
from apps.bookings.application.command_handlers import (
    ReservationCoordinator,
    ReservationStatus,
    ReserveCommand,
)
from apps.bookings.application.ports import (
    ChargeError,
    ChargeReceipt,
    FixedClock,
    ListingNotFoundError,
    ListingStoreError,
)
from apps.bookings.domain.events import BookingCreated, RefundReconciliationRequired
from apps.bookings.domain.validation import RejectionReason
from apps.bookings.infrastructure.memory import InMemoryListingStore

TODAY = date(2026, 10, 17)
HOST = "host"
GUEST = "guest"
LISTING = "loft"


class FakeGateway:
    """Records charges; can decline, fail or block until released."""

    def __init__(self, *, decline=False, error=None, delay=0.0, release=None):
        self.decline = decline
        self.error = error
        self.delay = delay
        self.release = release
        self.charges = []
        self.refunds = []
        self._lock = threading.Lock()

    def charge(self, *, amount, payment_source, host_payout_token, application_fee=0, idempotency_key=None):
        if self.release is not None:
            self.release.wait(5)
        if self.delay:
            time.sleep(self.delay)
        if self.decline:
            raise ChargeError("Your card was declined.", declined=True)
        if self.error:
            raise ChargeError(self.error)
        with self._lock:
            self.charges.append(
                {
                    "amount": amount,
                    "payment_source": payment_source,
                    "host_payout_token": host_payout_token,
                    "application_fee": application_fee,
                    "idempotency_key": idempotency_key,
                }
            )
            return ChargeReceipt(charge_id=f"ch_{len(self.charges)}", amount=amount)

    def refund(self, *, charge_id, amount, host_payout_token):
        self.refunds.append(charge_id)
        return f"re_{charge_id}"


def reserve_command(check_in_offset=1, check_out_offset=3, tenant=GUEST, listing=LISTING, source="tok_visa"):
    return ReserveCommand(
        listing_id=listing,
        tenant_id=tenant,
        check_in=TODAY + timedelta(days=check_in_offset),
        check_out=TODAY + timedelta(days=check_out_offset),
        payment_source=source,
    )


class CoordinatorTestCase(SimpleTestCase):
    def setUp(self) -> None:
        self.bus = MessageBus()
        self.created = []
        self.refunds_required = []
        self.bus.register_event_handler(BookingCreated, self.created.append)
        self.bus.register_event_handler(RefundReconciliationRequired, self.refunds_required.append)

        self.store = self.make_store()
        self.store.add_user(HOST, payout_token="acct_host")
        self.store.add_user(GUEST)
        self.store.add_listing(LISTING, host_id=HOST, price=100)
        self.gateway = FakeGateway()

    def make_store(self):
        return InMemoryListingStore(bus=self.bus)

    def coordinator(self, gateway=None, **kwargs) -> ReservationCoordinator:
        return ReservationCoordinator(self.store, gateway or self.gateway, FixedClock(TODAY), **kwargs)


class ReserveHappyPathTests(CoordinatorTestCase):
    def test_reservation_commits_booking_index_and_income(self) -> None:
        result = self.coordinator().reserve(reserve_command(1, 3))

        self.assertEqual(result.status, ReservationStatus.COMMITTED)
        self.assertTrue(result.ok)
        booking = result.booking
        self.assertEqual(booking.total_price, 300)
        self.assertEqual(booking.nights, 3)
        self.assertEqual(booking.charge_id, "ch_1")

        self.assertEqual(len(self.store.availability(LISTING)), 3)
        self.assertEqual(self.store.version(LISTING), 1)
        self.assertEqual(self.store.listing_bookings(LISTING), [booking.id])
        self.assertEqual(self.store.user_bookings(GUEST), [booking.id])
        self.assertEqual(self.store.income(HOST), 300)

    def test_charge_is_made_once_on_the_host_account(self) -> None:
        result = self.coordinator().reserve(reserve_command(1, 3))

        self.assertEqual(
            self.gateway.charges,
            [
                {
                    "amount": 300,
                    "payment_source": "tok_visa",
                    "host_payout_token": "acct_host",
                    "application_fee": 15,
                    "idempotency_key": f"booking-{result.booking.id}",
                }
            ],
        )

    def test_booking_created_event_is_published(self) -> None:
        result = self.coordinator().reserve(reserve_command(1, 1))

        self.assertEqual(len(self.created), 1)
        event = self.created[0]
        self.assertEqual(event.booking_id, result.booking.id)
        self.assertEqual(event.host_id, HOST)
        self.assertEqual(event.total_price, 100)

    def test_back_to_back_stays_do_not_overlap(self) -> None:
        coordinator = self.coordinator()

        first = coordinator.reserve(reserve_command(1, 3))
        second = coordinator.reserve(reserve_command(4, 5, tenant="other"))

        self.assertTrue(first.ok)
        self.assertTrue(second.ok)
        self.assertEqual(len(self.store.availability(LISTING)), 5)
        self.assertEqual(self.store.income(HOST), 500)


class ReserveRejectionTests(CoordinatorTestCase):
    def assertRejected(self, result, reason) -> None:
        self.assertEqual(result.status, ReservationStatus.REJECTED)
        self.assertEqual(result.reason, reason)
        self.assertEqual(self.gateway.charges, [])
        self.assertEqual(len(self.store.availability(LISTING)), 0)

    def test_self_booking(self) -> None:
        self.assertRejected(self.coordinator().reserve(reserve_command(tenant=HOST)), RejectionReason.SELF_BOOKING)

    def test_check_in_in_past(self) -> None:
        self.assertRejected(self.coordinator().reserve(reserve_command(-1, 2)), RejectionReason.CHECK_IN_IN_PAST)

    def test_invalid_range(self) -> None:
        self.assertRejected(self.coordinator().reserve(reserve_command(5, 2)), RejectionReason.INVALID_RANGE)

    def test_beyond_horizon(self) -> None:
        result = self.coordinator(horizon_days=30).reserve(reserve_command(10, 31))

        self.assertRejected(result, RejectionReason.BEYOND_BOOKING_HORIZON)

    def test_host_not_payable(self) -> None:
        self.store.add_user("broke_host")
        self.store.add_listing("shed", host_id="broke_host", price=50)

        result = self.coordinator().reserve(reserve_command(listing="shed"))

        self.assertEqual(result.reason, RejectionReason.HOST_NOT_PAYABLE)
        self.assertEqual(self.gateway.charges, [])

    def test_conflict_with_existing_booking(self) -> None:
        coordinator = self.coordinator()
        coordinator.reserve(reserve_command(3, 5))

        result = coordinator.reserve(reserve_command(1, 3, tenant="other"))

        self.assertEqual(result.status, ReservationStatus.REJECTED)
        self.assertEqual(result.reason, RejectionReason.DATE_CONFLICT)
        self.assertEqual(result.conflict_date, TODAY + timedelta(days=3))
        self.assertEqual(len(self.gateway.charges), 1)

    def test_invalid_price(self) -> None:
        self.store.add_listing("free", host_id=HOST, price=0)

        result = self.coordinator().reserve(reserve_command(listing="free"))

        self.assertEqual(result.status, ReservationStatus.REJECTED)
        self.assertEqual(result.reason, RejectionReason.INVALID_PRICE)
        self.assertEqual(self.gateway.charges, [])

    def test_unknown_listing_raises(self) -> None:
        with self.assertRaises(ListingNotFoundError):
            self.coordinator().reserve(reserve_command(listing="nowhere"))


class ChargeFailureTests(CoordinatorTestCase):
    def test_declined_charge_leaves_listing_untouched(self) -> None:
        result = self.coordinator(FakeGateway(decline=True)).reserve(reserve_command(1, 3))

        self.assertEqual(result.status, ReservationStatus.CHARGE_FAILED)
        self.assertTrue(result.charge_declined)
        self.assertEqual(len(self.store.availability(LISTING)), 0)
        self.assertEqual(self.store.version(LISTING), 0)
        self.assertEqual(self.store.income(HOST), 0)
        self.assertEqual(self.store.bookings, {})
        self.assertEqual(self.store.refund_obligations, {})

    def test_processor_error_is_not_a_decline(self) -> None:
        result = self.coordinator(FakeGateway(error="502 from processor")).reserve(reserve_command())

        self.assertEqual(result.status, ReservationStatus.CHARGE_FAILED)
        self.assertFalse(result.charge_declined)
        self.assertIn("502", result.error)

    def test_timeout_fails_the_charge_and_late_success_is_refunded(self) -> None:
        release = threading.Event()
        gateway = FakeGateway(release=release)
        executor = ThreadPoolExecutor(max_workers=1)

        result = self.coordinator(gateway, charge_timeout=0.05, executor=executor).reserve(reserve_command(1, 3))

        self.assertEqual(result.status, ReservationStatus.CHARGE_FAILED)
        self.assertIn("timed out", result.error)
        self.assertEqual(len(self.store.availability(LISTING)), 0)

        release.set()
        executor.shutdown(wait=True)

        self.assertEqual(len(gateway.charges), 1)
        obligations = list(self.store.refund_obligations.values())
        self.assertEqual(len(obligations), 1)
        self.assertEqual(obligations[0].charge_id, "ch_1")
        self.assertEqual(obligations[0].amount, 300)
        self.assertEqual(self.store.bookings, {})

    def test_queued_charge_is_cancelled_on_timeout(self) -> None:
        release = threading.Event()
        gateway = FakeGateway(release=release)
        executor = ThreadPoolExecutor(max_workers=1)
        coordinator = self.coordinator(gateway, charge_timeout=0.05, executor=executor)

        blocked = coordinator.reserve(reserve_command(1, 3))
        queued = coordinator.reserve(reserve_command(5, 6, tenant="second-guest"))

        self.assertEqual(blocked.status, ReservationStatus.CHARGE_FAILED)
        self.assertEqual(queued.status, ReservationStatus.CHARGE_FAILED)

        release.set()
        executor.shutdown(wait=True)

        self.assertEqual(len(gateway.charges), 1)
        self.assertEqual(gateway.charges[0]["amount"], 300)
        obligations = list(self.store.refund_obligations.values())
        self.assertEqual([o.tenant_id for o in obligations], [GUEST])

    def test_late_charge_closes_worker_connections(self) -> None:
        release = threading.Event()
        gateway = FakeGateway(release=release)
        executor = ThreadPoolExecutor(max_workers=1)
        closed_on = []

        with mock.patch(
            "apps.bookings.application.command_handlers.close_old_connections",
            side_effect=lambda: closed_on.append(threading.get_ident()),
        ):
            result = self.coordinator(gateway, charge_timeout=0.05, executor=executor).reserve(
                reserve_command(1, 3)
            )
            release.set()
            executor.shutdown(wait=True)

        self.assertEqual(result.status, ReservationStatus.CHARGE_FAILED)
        self.assertEqual(len(self.store.refund_obligations), 1)
        self.assertEqual(len(closed_on), 1)
        self.assertNotEqual(closed_on[0], threading.get_ident())


class ScriptedStore(InMemoryListingStore):
    """In-memory store that runs a hook before each commit."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.before_commit = []
        self.commit_calls = 0
        self.fail_obligations = False

    def commit(self, snapshot, availability, booking, events=()):
        self.commit_calls += 1
        if self.before_commit:
            self.before_commit.pop(0)()
        return super().commit(snapshot, availability, booking, events)

    def record_refund_obligation(self, obligation, events=()):
        if self.fail_obligations:
            raise ListingStoreError("disk full")
        return super().record_refund_obligation(obligation, events)


class CommitConflictTests(CoordinatorTestCase):
    def make_store(self):
        return ScriptedStore(bus=self.bus)

    def competing_booking(self, check_in_offset, check_out_offset):
        def book():
            other = ReservationCoordinator(self.store, FakeGateway(), FixedClock(TODAY))
            self.store.before_commit.insert(0, lambda: None)
            assert other.reserve(reserve_command(check_in_offset, check_out_offset, tenant="rival")).ok
        return book

    def test_version_conflict_is_retried_without_charging_again(self) -> None:
        self.store.before_commit.append(self.competing_booking(10, 11))

        result = self.coordinator().reserve(reserve_command(1, 3))

        self.assertEqual(result.status, ReservationStatus.COMMITTED)
        self.assertEqual(len(self.gateway.charges), 1)
        self.assertEqual(self.store.version(LISTING), 2)
        self.assertEqual(len(self.store.availability(LISTING)), 5)
        self.assertEqual(self.store.refund_obligations, {})

    def test_overlapping_commit_in_between_requires_refund(self) -> None:
        self.store.before_commit.append(self.competing_booking(2, 4))

        result = self.coordinator().reserve(reserve_command(1, 3))

        self.assertEqual(result.status, ReservationStatus.COMMIT_FAILED)
        self.assertTrue(result.conflict)
        self.assertEqual(result.reason, RejectionReason.DATE_CONFLICT)
        self.assertEqual(result.conflict_date, TODAY + timedelta(days=2))
        self.assertIn(result.reconciliation_id, self.store.refund_obligations)
        self.assertEqual(len(self.store.listing_bookings(LISTING)), 1)
        self.assertEqual(len(self.refunds_required), 1)
        self.assertEqual(self.refunds_required[0].amount, 300)

    def test_price_change_during_reservation_requires_refund(self) -> None:
        self.store.before_commit.append(lambda: self.store.set_price(LISTING, 120))

        result = self.coordinator().reserve(reserve_command(1, 3))

        self.assertEqual(result.status, ReservationStatus.COMMIT_FAILED)
        self.assertTrue(result.conflict)
        self.assertIn("Price changed", result.error)
        obligation = self.store.refund_obligations[result.reconciliation_id]
        self.assertEqual(obligation.amount, 300)
        self.assertEqual(obligation.host_payout_token, "acct_host")
        self.assertEqual(self.store.bookings, {})

    def test_gives_up_after_configured_retries(self) -> None:
        bump = lambda: self.store.set_price(LISTING, 100)  # noqa: E731
        self.store.before_commit.extend([bump, bump, bump])

        result = self.coordinator(commit_retries=3).reserve(reserve_command(1, 3))

        self.assertEqual(result.status, ReservationStatus.COMMIT_FAILED)
        self.assertEqual(self.store.commit_calls, 3)
        self.assertEqual(len(self.gateway.charges), 1)
        self.assertIsNotNone(result.reconciliation_id)
        self.assertEqual(len(self.store.availability(LISTING)), 0)

    def test_store_failure_on_commit_is_not_a_conflict(self) -> None:
        def explode():
            raise ListingStoreError("connection reset")

        self.store.before_commit.append(explode)

        result = self.coordinator().reserve(reserve_command(1, 3))

        self.assertEqual(result.status, ReservationStatus.COMMIT_FAILED)
        self.assertFalse(result.conflict)
        self.assertIn("connection reset", result.error)
        self.assertIn(result.reconciliation_id, self.store.refund_obligations)

    def test_unrecorded_refund_is_logged_critically(self) -> None:
        self.store.before_commit.append(lambda: self.store.set_price(LISTING, 150))
        self.store.fail_obligations = True

        with self.assertLogs("apps.bookings.application.command_handlers", level="CRITICAL") as logs:
            result = self.coordinator().reserve(reserve_command(1, 3))

        self.assertEqual(result.status, ReservationStatus.COMMIT_FAILED)
        self.assertIsNone(result.reconciliation_id)
        self.assertIn("could not be recorded", result.error)
        self.assertIn("REFUND REQUIRED", logs.output[0])


class LoadFailureTests(CoordinatorTestCase):
    def test_store_timeout_before_charge_needs_no_refund(self) -> None:
        self.store = InMemoryListingStore(lock_timeout=0.01)
        self.store.add_user(HOST, payout_token="acct_host")
        self.store.add_listing(LISTING, host_id=HOST, price=100)

        with self.store._locked():
            result = self.coordinator().reserve(reserve_command())

        self.assertEqual(result.status, ReservationStatus.COMMIT_FAILED)
        self.assertFalse(result.conflict)
        self.assertIsNone(result.reconciliation_id)
        self.assertEqual(self.gateway.charges, [])


class ConcurrentReservationTests(CoordinatorTestCase):
    def test_overlapping_reservations_commit_exactly_once(self) -> None:
        attempts = 8
        gateway = FakeGateway(delay=0.01)
        coordinator = self.coordinator(gateway, executor=ThreadPoolExecutor(max_workers=attempts))
        start = threading.Barrier(attempts)
        results = []
        results_lock = threading.Lock()

        def run(i):
            command = reserve_command(1 + i % 3, 5 + i % 3, tenant=f"guest-{i}")
            start.wait()
            result = coordinator.reserve(command)
            with results_lock:
                results.append((command, result))

        threads = [threading.Thread(target=run, args=(i,)) for i in range(attempts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)

        self.assertEqual(len(results), attempts)
        winners = [(command, result) for command, result in results if result.ok]
        self.assertEqual(len(winners), 1)

        losers = [result for _, result in results if not result.ok]
        for result in losers:
            self.assertIn(result.status, {ReservationStatus.REJECTED, ReservationStatus.COMMIT_FAILED})
            if result.status is ReservationStatus.REJECTED:
                self.assertEqual(result.reason, RejectionReason.DATE_CONFLICT)

        winning_command = winners[0][0]
        self.assertEqual(len(self.store.availability(LISTING)), winning_command.dates.nights)
        self.assertEqual(len(self.store.bookings), 1)

        # Every charge that did not become the booking is owed back
        self.assertEqual(len(gateway.charges) - 1, len(self.store.refund_obligations))
