"""Serializers for the viewer API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.serializers import BookingSerializer
from apps.listings.serializers import ListingSerializer
from apps.users.models import CustomUser


class ViewerSerializer(serializers.ModelSerializer):
    """
    Profile of the signed-in user.

    The payout token itself is never returned, only whether one is
    connected.
    """

    is_payable = serializers.BooleanField(read_only=True)
    listings = ListingSerializer(many=True, read_only=True)
    bookings = BookingSerializer(many=True, read_only=True)

    class Meta:
        model = CustomUser
        fields = [
            "id",
            "email",
            "username",
            "is_payable",
            "income",
            "listings",
            "bookings",
        ]
        read_only_fields = fields


class PayoutAccountSerializer(serializers.Serializer):
    """Connected account id returned by the card processor."""

    payout_token = serializers.CharField(max_length=255, trim_whitespace=True)

    def validate_payout_token(self, value: str) -> str:
        if not value.startswith("acct_"):
            raise serializers.ValidationError("Expected a connected account id (acct_...).")
        return value
