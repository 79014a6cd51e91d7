"""Listing API views."""

from __future__ import annotations

import logging

from django.shortcuts import get_object_or_404  # type: ignore
from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.filters import OrderingFilter  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus
from apps.bookings.application.command_handlers import (
    ReservationResult,
    ReservationStatus,
    ReserveCommand,
)
from apps.bookings.application.ports import ListingNotFoundError
from apps.bookings.models import Booking
from apps.bookings.serializers import BookingSerializer, ReservationRequestSerializer

from .filters import ListingFilterSet
from .models import Listing
from .serializers import AvailabilitySerializer, ListingSerializer, ListingWriteSerializer

logger = logging.getLogger(__name__)


class IsHostOrReadOnly(permissions.BasePermission):
    """Only the host may change a listing."""

    def has_object_permission(self, request, view, obj: Listing):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.host_id == request.user.id


def reservation_status_code(result: ReservationResult) -> int:
    if result.status is ReservationStatus.COMMITTED:
        return status.HTTP_201_CREATED
    if result.status is ReservationStatus.REJECTED:
        return status.HTTP_400_BAD_REQUEST
    if result.status is ReservationStatus.CHARGE_FAILED:
        return status.HTTP_402_PAYMENT_REQUIRED
    if result.conflict:
        return status.HTTP_409_CONFLICT
    return status.HTTP_503_SERVICE_UNAVAILABLE


class ListingViewSet(viewsets.ModelViewSet):
    """
    Listings and their bookings.

    GET    /listings/                 search (public)
    POST   /listings/                 create, the caller becomes the host
    GET    /listings/{id}/availability/
    GET    /listings/{id}/bookings/   host only, paginated
    POST   /listings/{id}/bookings/   reserve and pay
    """

    queryset = Listing.objects.select_related("host").all()
    permission_classes = [permissions.IsAuthenticatedOrReadOnly, IsHostOrReadOnly]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    filterset_class = ListingFilterSet
    ordering_fields = ["price", "created_at"]
    http_method_names = ["get", "post", "patch", "head", "options"]
    lookup_value_regex = r"\d+"

    def get_serializer_class(self):  # type: ignore
        if self.action in {"create", "partial_update"}:
            return ListingWriteSerializer
        if self.action == "availability":
            return AvailabilitySerializer
        if self.action == "bookings":
            return BookingSerializer
        if self.action == "reserve":
            return ReservationRequestSerializer
        return ListingSerializer

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        listing = serializer.save()
        read_serializer = ListingSerializer(listing, context=self.get_serializer_context())
        headers = self.get_success_headers(read_serializer.data)
        return Response(read_serializer.data, status=status.HTTP_201_CREATED, headers=headers)

    @action(detail=True, methods=["get"], permission_classes=[permissions.AllowAny])
    def availability(self, request, pk=None):  # type: ignore
        listing = self.get_object()
        return Response(AvailabilitySerializer(listing).data)

    @action(detail=True, methods=["get"], permission_classes=[permissions.IsAuthenticated])
    def bookings(self, request, pk=None):  # type: ignore
        listing = self.get_object()
        if listing.host_id != request.user.id:
            return Response(
                {"detail": "Only the host can see the bookings of a listing."},
                status=status.HTTP_403_FORBIDDEN,
            )

        queryset = Booking.objects.select_related("listing", "tenant").filter(listing=listing)
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = BookingSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(BookingSerializer(queryset, many=True).data)

    @bookings.mapping.post
    def reserve(self, request, pk=None):  # type: ignore
        request_serializer = self.get_serializer(data=request.data)
        request_serializer.is_valid(raise_exception=True)
        data = request_serializer.validated_data

        command = ReserveCommand(
            listing_id=int(pk),
            tenant_id=request.user.id,
            check_in=data["check_in"],
            check_out=data["check_out"],
            payment_source=data["payment_source"],
        )
        try:
            result = message_bus.handle_command(command)
        except ListingNotFoundError:
            return Response({"detail": "Listing not found."}, status=status.HTTP_404_NOT_FOUND)

        code = reservation_status_code(result)
        if result.ok:
            booking = get_object_or_404(Booking.objects.select_related("listing", "tenant"), pk=result.booking.id)
            return Response(BookingSerializer(booking).data, status=code)

        payload = {
            "status": result.status.value,
            "detail": result.error or (result.reason.value if result.reason else ""),
        }
        if result.reason is not None:
            payload["reason"] = result.reason.value
        if result.conflict_date is not None:
            payload["conflict_date"] = result.conflict_date.isoformat()
        if result.reconciliation_id is not None:
            payload["reconciliation_id"] = str(result.reconciliation_id)
        return Response(payload, status=code)
