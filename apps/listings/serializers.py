"""Serializers for listings."""

from __future__ import annotations

from django.db.models import F  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework import serializers  # type: ignore

from .models import Listing


class ListingSerializer(serializers.ModelSerializer):
    host_id = serializers.ReadOnlyField(source="host.id")

    class Meta:
        model = Listing
        fields = [
            "id",
            "host_id",
            "title",
            "description",
            "listing_type",
            "city",
            "address",
            "max_guests",
            "price",
            "created_at",
        ]
        read_only_fields = ["id", "host_id", "created_at"]


class ListingWriteSerializer(ListingSerializer):
    """
    Create and edit listings.

    The availability index and version are never written here. Updates
    go through a single UPDATE that bumps the version, so a reservation
    in flight sees the change and re-prices.
    """

    def create(self, validated_data):  # type: ignore
        validated_data["host"] = self.context["request"].user
        return super().create(validated_data)

    def update(self, instance, validated_data):  # type: ignore
        if not validated_data:
            return instance
        Listing.objects.filter(pk=instance.pk).update(
            version=F("version") + 1,
            updated_at=timezone.now(),
            **validated_data,
        )
        instance.refresh_from_db()
        return instance


class AvailabilitySerializer(serializers.Serializer):
    """Booked days of a listing."""

    listing_id = serializers.IntegerField(source="pk")
    version = serializers.IntegerField()
    availability = serializers.SerializerMethodField()
    booked_dates = serializers.SerializerMethodField()

    def get_availability(self, obj: Listing):  # type: ignore
        return obj.availability_index.to_dict()

    def get_booked_dates(self, obj: Listing):  # type: ignore
        return [d.isoformat() for d in obj.availability_index.booked_dates()]
