"""Integration tests for listing endpoints."""

from __future__ import annotations

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.listings.models import Listing
from apps.users.models import CustomUser


class ListingAPITests(APITestCase):
    def setUp(self) -> None:
        self.host = CustomUser.objects.create_user(
            email="host@example.com",
            password="HostPass123",
            payout_token="acct_host",
        )
        self.other = CustomUser.objects.create_user(email="other@example.com", password="OtherPass123")
        self.loft = Listing.objects.create(
            host=self.host,
            title="Canal-side loft",
            description="Two rooms over the water.",
            city="Amsterdam",
            price=180,
            max_guests=2,
        )
        self.cottage = Listing.objects.create(
            host=self.host,
            title="Stone cottage",
            description="Fireplace and garden.",
            city="Bath",
            listing_type=Listing.ListingType.HOUSE,
            price=120,
            max_guests=5,
        )
        self.list_url = reverse("listing-list")

    def test_anyone_can_search(self) -> None:
        response = self.client.get(self.list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 2)

    def test_filter_by_city_and_guests(self) -> None:
        by_city = self.client.get(self.list_url, {"city": "amster"})
        by_guests = self.client.get(self.list_url, {"guests": 4})

        self.assertEqual([item["id"] for item in by_city.data["results"]], [self.loft.pk])
        self.assertEqual([item["id"] for item in by_guests.data["results"]], [self.cottage.pk])

    def test_filter_by_price_and_order(self) -> None:
        response = self.client.get(self.list_url, {"price_max": 200, "ordering": "price"})

        self.assertEqual([item["price"] for item in response.data["results"]], [120, 180])

    def test_create_makes_caller_the_host(self) -> None:
        self.client.force_authenticate(self.other)

        response = self.client.post(
            self.list_url,
            {
                "title": "Harbour flat",
                "description": "Sea view.",
                "city": "Bristol",
                "price": 95,
                "availability": {"2026": {"10": {"20": True}}},
                "version": 7,
            },
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["host_id"], self.other.pk)
        listing = Listing.objects.get(pk=response.data["id"])
        self.assertEqual(listing.availability, {})
        self.assertEqual(listing.version, 0)

    def test_price_must_be_positive(self) -> None:
        self.client.force_authenticate(self.other)

        response = self.client.post(
            self.list_url,
            {"title": "Free room", "description": "Too good.", "city": "Leeds", "price": 0},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("price", response.data)

    def test_anonymous_cannot_create(self) -> None:
        response = self.client.post(self.list_url, {"title": "x"}, format="json")

        self.assertIn(response.status_code, {status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN})

    def test_host_price_change_bumps_version_and_keeps_bookings(self) -> None:
        Listing.objects.filter(pk=self.loft.pk).update(availability={"2026": {"11": {"1": True}}})
        self.client.force_authenticate(self.host)

        response = self.client.patch(reverse("listing-detail", args=[self.loft.pk]), {"price": 200}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["price"], 200)
        self.loft.refresh_from_db()
        self.assertEqual(self.loft.version, 1)
        self.assertEqual(self.loft.availability, {"2026": {"11": {"1": True}}})

    def test_only_host_can_edit(self) -> None:
        self.client.force_authenticate(self.other)

        response = self.client.patch(reverse("listing-detail", args=[self.loft.pk]), {"price": 1}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.loft.refresh_from_db()
        self.assertEqual(self.loft.price, 180)

    def test_listings_cannot_be_deleted(self) -> None:
        self.client.force_authenticate(self.host)

        response = self.client.delete(reverse("listing-detail", args=[self.loft.pk]))

        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_empty_availability(self) -> None:
        response = self.client.get(reverse("listing-availability", args=[self.cottage.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["listing_id"], self.cottage.pk)
        self.assertEqual(response.data["booked_dates"], [])
