"""Booking persistence models."""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import DateRange
from shared.infrastructure.fields import EncryptedCharField
from apps.bookings.domain.entities import Booking as BookingEntity


class Booking(models.Model):
    """A committed stay. Rows are written once and never updated."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    tenant = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    check_in = models.DateField()
    check_out = models.DateField()
    total_price = models.PositiveBigIntegerField(
        help_text=_("Amount charged, in the smallest currency unit."),
    )
    charge_id = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gte=models.F("check_in")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["listing", "check_in"], name="booking_listing_checkin_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking {self.pk} for listing {self.listing_id}"

    def save(self, *args, **kwargs):  # type: ignore
        if not self._state.adding:
            raise ValueError("Bookings are immutable once created.")
        super().save(*args, **kwargs)

    @property
    def nights(self) -> int:
        return (self.check_out - self.check_in).days + 1

    def to_domain(self) -> BookingEntity:
        return BookingEntity(
            id=self.pk,
            listing_id=self.listing_id,
            tenant_id=self.tenant_id,
            dates=DateRange(self.check_in, self.check_out),
            total_price=self.total_price,
            charge_id=self.charge_id,
            created_at=self.created_at,
        )

    @classmethod
    def from_domain(cls, booking: BookingEntity) -> "Booking":
        return cls(
            id=booking.id,
            listing_id=booking.listing_id,
            tenant_id=booking.tenant_id,
            check_in=booking.dates.check_in,
            check_out=booking.dates.check_out,
            total_price=booking.total_price,
            charge_id=booking.charge_id,
        )


class RefundReconciliation(models.Model):
    """A charge that went through without a booking being stored."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Pending refund")
        REFUNDED = "refunded", _("Refunded")
        FAILED = "failed", _("Refund failed, needs manual action")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    listing_id = models.BigIntegerField(null=True, blank=True)
    tenant_id = models.BigIntegerField(null=True, blank=True)
    charge_id = models.CharField(max_length=255)
    amount = models.PositiveBigIntegerField()
    host_payout_token = EncryptedCharField(blank=True, default="")
    reason = models.TextField()
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    attempts = models.PositiveSmallIntegerField(default=0)
    refund_id = models.CharField(max_length=255, blank=True)
    last_error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Refund reconciliation")
        verbose_name_plural = _("Refund reconciliations")
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="refund_status_created_idx"),
        ]

    def __str__(self) -> str:
        return f"Refund {self.amount} for charge {self.charge_id} ({self.status})"
