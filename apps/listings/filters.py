"""FilterSet definitions for listing search."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Listing


class ListingFilterSet(django_filters.FilterSet):
    city = django_filters.CharFilter(field_name="city", lookup_expr="icontains")
    listing_type = django_filters.ChoiceFilter(choices=Listing.ListingType.choices)
    price_min = django_filters.NumberFilter(field_name="price", lookup_expr="gte")
    price_max = django_filters.NumberFilter(field_name="price", lookup_expr="lte")
    guests = django_filters.NumberFilter(field_name="max_guests", lookup_expr="gte")

    class Meta:
        model = Listing
        fields = ["city", "listing_type"]
