"""URL routing for the viewer API."""

from django.urls import path, include  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import ViewerViewSet

router = DefaultRouter()
router.register(r"", ViewerViewSet, basename="viewer")

urlpatterns = [
    path("", include(router.urls)),
]
