"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking


class ReservationRequestSerializer(serializers.Serializer):
    """Stay dates and the guest's card token."""

    check_in = serializers.DateField()
    check_out = serializers.DateField()
    payment_source = serializers.CharField(max_length=255)


class BookingSerializer(serializers.ModelSerializer):
    """Read-only representation of a committed booking."""

    listing_id = serializers.ReadOnlyField(source="listing.id")
    tenant_id = serializers.ReadOnlyField(source="tenant.id")
    nights = serializers.ReadOnlyField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "listing_id",
            "tenant_id",
            "check_in",
            "check_out",
            "nights",
            "total_price",
            "created_at",
        ]
        read_only_fields = fields
