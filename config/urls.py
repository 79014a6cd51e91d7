"""URL configuration for the rental booking ledger.

Routes the Django admin and the versioned REST API of each app.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/listings/', include('apps.listings.urls')),
    path('api/v1/bookings/', include('apps.bookings.urls')),
    path('api/v1/users/', include('apps.users.api.urls')),
    path('api-auth/', include('rest_framework.urls')),
]
