"""API views for the signed-in user."""

from __future__ import annotations

import logging

from django.db.models import Prefetch  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.models import Booking
from apps.users.models import CustomUser
from .serializers import PayoutAccountSerializer, ViewerSerializer

logger = logging.getLogger(__name__)


class ViewerViewSet(viewsets.GenericViewSet):
    """
    The signed-in user's own account.

    Endpoints:
    - GET /api/v1/users/me/ - profile, payout status, income, listings, bookings
    - POST /api/v1/users/me/payout-account/ - connect a payout account
    - DELETE /api/v1/users/me/payout-account/ - disconnect it
    """

    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ViewerSerializer

    def get_viewer(self) -> CustomUser:
        return (
            CustomUser.objects.prefetch_related(
                "listings",
                Prefetch("bookings", queryset=Booking.objects.select_related("listing", "tenant")),
            )
            .get(pk=self.request.user.pk)
        )

    @action(detail=False, methods=["get"])
    def me(self, request):
        """Profile of the signed-in user."""
        return Response(ViewerSerializer(self.get_viewer()).data)

    @action(detail=False, methods=["post"], url_path="me/payout-account", serializer_class=PayoutAccountSerializer)
    def payout_account(self, request):
        serializer = PayoutAccountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        self._set_payout_token(request.user, serializer.validated_data["payout_token"])
        logger.info(f"User {request.user.pk} connected a payout account")
        return Response(ViewerSerializer(self.get_viewer()).data)

    @payout_account.mapping.delete
    def disconnect_payout_account(self, request):
        if not request.user.payout_token:
            return Response({"detail": "No payout account connected."}, status=status.HTTP_400_BAD_REQUEST)

        self._set_payout_token(request.user, "")
        logger.info(f"User {request.user.pk} disconnected their payout account")
        return Response(ViewerSerializer(self.get_viewer()).data)

    def _set_payout_token(self, user: CustomUser, token: str) -> None:
        # income is only ever incremented by booking commits
        user.payout_token = token
        user.save(update_fields=["payout_token", "updated_at"])
