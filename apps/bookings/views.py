"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import permissions, viewsets  # type: ignore

from .models import Booking
from .serializers import BookingSerializer


class BookingViewSet(viewsets.ReadOnlyModelViewSet):
    """Bookings made by the current user, newest first."""

    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):  # type: ignore
        return Booking.objects.select_related("listing", "tenant").filter(tenant=self.request.user)
