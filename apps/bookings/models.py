"""Booking models for the homestay marketplace."""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.entities import ExistingReservation
from shared.domain.value_objects import DateRange


class Booking(models.Model):
    """A stay reservation accepted by the booking engine."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Awaiting host confirmation")
        CONFIRMED = "confirmed", _("Confirmed")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")
        EXPIRED = "expired", _("Expired")

    class GuestType(models.TextChoices):
        REGISTERED = "registered", _("Registered user")
        WALK_IN = "walk_in", _("Walk-in guest")

    ACTIVE_STATUSES = (Status.PENDING, Status.CONFIRMED, Status.COMPLETED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    booking_code = models.CharField(max_length=20, unique=True, editable=False)
    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    guest_type = models.CharField(max_length=20, choices=GuestType.choices, default=GuestType.REGISTERED)
    contact_name = models.CharField(max_length=255, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=32, blank=True)
    check_in = models.DateField()
    check_out = models.DateField()
    adults = models.PositiveSmallIntegerField(default=1)
    children = models.PositiveSmallIntegerField(default=0)
    infants = models.PositiveSmallIntegerField(default=0)
    pets = models.PositiveSmallIntegerField(default=0)
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.PENDING)
    instant_book = models.BooleanField(default=False)
    nightly_rate = models.PositiveBigIntegerField(default=0)
    total_nights = models.PositiveSmallIntegerField(default=1)
    base_price_total = models.PositiveBigIntegerField(default=0)
    cleaning_fee = models.PositiveBigIntegerField(default=0)
    service_fee = models.PositiveBigIntegerField(default=0)
    membership_discount = models.PositiveBigIntegerField(default=0)
    promotion_discount = models.PositiveBigIntegerField(default=0)
    discount_amount = models.PositiveBigIntegerField(default=0)
    total_price = models.PositiveBigIntegerField(default=0)
    currency = models.CharField(max_length=3, default="VND")
    promotion_code = models.CharField(max_length=64, blank=True)
    applied_promotions = models.JSONField(default=list, blank=True)
    special_requests = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out__gt=models.F("check_in")),
                name="booking_valid_dates",
            ),
            models.CheckConstraint(
                condition=models.Q(
                    total_price=models.F("base_price_total")
                    + models.F("cleaning_fee")
                    + models.F("service_fee")
                    - models.F("discount_amount")
                ),
                name="booking_total_identity",
            ),
        ]
        indexes = [
            models.Index(fields=["listing", "check_in", "check_out"], name="booking_listing_dates_idx"),
            models.Index(fields=["status"], name="booking_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} for {self.listing_id}"

    @property
    def dates(self) -> DateRange:
        return DateRange(self.check_in, self.check_out)

    def to_reservation(self) -> ExistingReservation:
        return ExistingReservation.from_raw(self.dates, self.status, booking_id=str(self.pk))
