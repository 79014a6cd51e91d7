"""Listing models."""

from __future__ import annotations

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.availability import AvailabilityIndex
from apps.bookings.domain.entities import ListingSnapshot


class Listing(models.Model):
    """A home offered for booking by its host."""

    class ListingType(models.TextChoices):
        APARTMENT = "apartment", _("Apartment")
        HOUSE = "house", _("House")

    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="listings",
    )
    title = models.CharField(max_length=100)
    description = models.TextField(max_length=5000)
    listing_type = models.CharField(
        max_length=20,
        choices=ListingType.choices,
        default=ListingType.APARTMENT,
    )
    city = models.CharField(max_length=100, db_index=True)
    address = models.CharField(max_length=255, blank=True)
    max_guests = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1)])
    price = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text=_("Nightly price in the smallest currency unit."),
    )
    availability = models.JSONField(
        default=dict,
        blank=True,
        help_text=_("Booked days as year -> month -> day -> true."),
    )
    version = models.PositiveIntegerField(
        default=0,
        help_text=_("Incremented on every committed booking."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Listing")
        verbose_name_plural = _("Listings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(condition=models.Q(price__gte=1), name="listing_price_positive"),
        ]
        indexes = [
            models.Index(fields=["city", "price"], name="listing_city_price_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.city})"

    @property
    def availability_index(self) -> AvailabilityIndex:
        return AvailabilityIndex.from_dict(self.availability)

    def to_snapshot(self) -> ListingSnapshot:
        return ListingSnapshot(
            listing_id=self.pk,
            host_id=self.host_id,
            nightly_price=self.price,
            availability=self.availability_index,
            version=self.version,
            host_payout_token=self.host.payout_token,
        )
