"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings.models import Booking
from apps.listings.models import Listing
from apps.promotions.models import Promotion


class BookingAPITests(APITestCase):
    """Covers создание, конфликты, промокоды и расчёт стоимости."""

    def setUp(self) -> None:
        User = get_user_model()
        self.guest = User.objects.create_user(username="guest", email="guest@example.com", password="GuestPass123")
        self.other = User.objects.create_user(username="other", email="other@example.com", password="OtherPass123")
        self.listing = Listing.objects.create(
            title="Homestay by the lake",
            status=Listing.Status.ACTIVE,
            base_price=1_000_000,
            cleaning_fee=200_000,
            service_fee=150_000,
            max_guests=4,
        )
        self.create_url = reverse("booking-create")
        self.quote_url = reverse("booking-quote")
        self.check_in = timezone.localdate() + timedelta(days=14)

    def _payload(self, check_in: date, check_out: date, **extra) -> dict:
        payload = {
            "listing": str(self.listing.id),
            "check_in": str(check_in),
            "check_out": str(check_out),
            "adults": 2,
        }
        payload.update(extra)
        return payload

    def _book(self, offset: int = 0, nights: int = 3, **extra):
        check_in = self.check_in + timedelta(days=offset)
        return self.client.post(
            self.create_url,
            self._payload(check_in, check_in + timedelta(days=nights), **extra),
            format="json",
        )

    def test_guest_can_create_booking(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self._book()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["status"], Booking.Status.PENDING)
        self.assertEqual(response.data["total_price"], 3_350_000)
        self.assertEqual(response.data["guest"], self.guest.id)
        self.assertEqual(response.data["listing_title"], "Homestay by the lake")

    def test_walk_in_booking_needs_contact(self) -> None:
        missing = self._book(contact_name="Hoa")
        created = self._book(contact_name="Hoa", contact_email="hoa@example.com")

        self.assertEqual(missing.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("contact_email", missing.data)
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        self.assertEqual(created.data["guest_type"], Booking.GuestType.WALK_IN)

    def test_overlapping_booking_returns_conflict(self) -> None:
        self.client.force_authenticate(self.guest)
        self._book()

        response = self._book(offset=2)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        error = response.data["error"]
        self.assertEqual(error["kind"], "UNAVAILABLE")
        self.assertEqual(
            error["conflicting_range"],
            {"start": str(self.check_in), "end": str(self.check_in + timedelta(days=3))},
        )

    def test_back_to_back_bookings_are_allowed(self) -> None:
        self.client.force_authenticate(self.guest)
        self._book()

        response = self._book(offset=3)

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_too_many_guests(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self._book(adults=3, children=2)

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["error"]["kind"], "CAPACITY")

    def test_past_dates_are_rejected(self) -> None:
        self.client.force_authenticate(self.guest)
        check_in = timezone.localdate() - timedelta(days=2)

        response = self.client.post(
            self.create_url, self._payload(check_in, check_in + timedelta(days=3)), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["error"]["kind"], "PAST_DATE")

    def test_check_out_must_follow_check_in(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self.client.post(
            self.create_url, self._payload(self.check_in, self.check_in), format="json"
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("check_out", response.data)

    def test_unknown_listing(self) -> None:
        self.client.force_authenticate(self.guest)
        payload = self._payload(self.check_in, self.check_in + timedelta(days=2))
        payload["listing"] = "2c9f8a4e-0000-4000-8000-000000000000"

        response = self.client.post(self.create_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_invalid_promotion_code(self) -> None:
        self.client.force_authenticate(self.guest)

        response = self._book(promotion_code="GHOST")

        self.assertEqual(response.status_code, status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.assertEqual(response.data["error"]["category"], "promotion_ineligible")
        self.assertFalse(Booking.objects.exists())

    def test_booking_with_promotion(self) -> None:
        Promotion.objects.create(
            code="SPRING15",
            discount_type=Promotion.DiscountTypeChoices.PERCENTAGE,
            discount_value=15,
            max_discount=300_000,
        )
        self.client.force_authenticate(self.guest)

        response = self._book(promotion_code="spring15")

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data["promotion_discount"], 300_000)
        self.assertEqual(response.data["total_price"], 3_050_000)

    def test_quote_returns_breakdown_without_booking(self) -> None:
        response = self.client.post(
            self.quote_url,
            self._payload(self.check_in, self.check_in + timedelta(days=3), contact_name="Hoa", contact_phone="0901234567"),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["pricing"]["subtotal"], 3_350_000)
        self.assertEqual(response.data["states"][-1], "accepted")
        self.assertFalse(Booking.objects.exists())

    def test_promotion_endpoint(self) -> None:
        Promotion.objects.create(
            code="WELCOME",
            discount_type=Promotion.DiscountTypeChoices.FIXED_AMOUNT,
            discount_value=100_000,
        )
        self.client.force_authenticate(self.guest)
        booking_id = self._book().data["id"]
        url = reverse("booking-promotion", kwargs={"booking_id": booking_id})

        applied = self.client.post(url, {"code": "welcome"}, format="json")
        released = self.client.delete(url, {"code": "WELCOME"}, format="json")
        missing = self.client.delete(url, {"code": "WELCOME"}, format="json")

        self.assertEqual(applied.status_code, status.HTTP_200_OK)
        self.assertEqual(applied.data["total_price"], 3_250_000)
        self.assertEqual(released.status_code, status.HTTP_200_OK)
        self.assertEqual(released.data["total_price"], 3_350_000)
        self.assertEqual(missing.status_code, status.HTTP_404_NOT_FOUND)

    def test_promotion_endpoint_is_owner_only(self) -> None:
        self.client.force_authenticate(self.guest)
        booking_id = self._book().data["id"]
        url = reverse("booking-promotion", kwargs={"booking_id": booking_id})

        self.client.force_authenticate(self.other)
        response = self.client.post(url, {"code": "WELCOME"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_promotion_endpoint_requires_login(self) -> None:
        url = reverse("booking-promotion", kwargs={"booking_id": "2c9f8a4e-0000-4000-8000-000000000000"})

        response = self.client.post(url, {"code": "WELCOME"}, format="json")

        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))
