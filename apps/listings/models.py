"""Listing models for the homestay marketplace."""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.bookings.domain.entities import BlockedInterval, Listing as ListingSnapshot
from shared.domain.value_objects import DateRange


class Listing(models.Model):
    """A homestay offered for nightly rental."""

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        PENDING = "pending", _("Under review")
        ACTIVE = "active", _("Active")
        INACTIVE = "inactive", _("Inactive")
        BLOCKED = "blocked", _("Blocked by moderation")

    class PropertyType(models.TextChoices):
        APARTMENT = "apartment", _("Apartment")
        HOUSE = "house", _("House")
        VILLA = "villa", _("Villa")
        HOMESTAY = "homestay", _("Homestay")
        BUNGALOW = "bungalow", _("Bungalow")
        CONDO = "condo", _("Condo")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="listings",
    )
    title = models.CharField(max_length=255)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    property_type = models.CharField(
        max_length=20,
        choices=PropertyType.choices,
        default=PropertyType.HOMESTAY,
    )
    max_guests = models.PositiveSmallIntegerField(default=2, validators=[MinValueValidator(1)])
    allows_pets = models.BooleanField(default=False)
    base_price = models.PositiveBigIntegerField(help_text=_("Nightly rate in whole currency units."))
    cleaning_fee = models.PositiveBigIntegerField(default=0)
    service_fee = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text=_("Flat service fee override. Empty means the platform rate applies."),
    )
    currency = models.CharField(max_length=3, default="VND")
    instant_bookable = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Listing")
        verbose_name_plural = _("Listings")
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="listing_status_idx"),
            models.Index(fields=["host", "status"], name="listing_host_status_idx"),
        ]

    def __str__(self) -> str:
        return self.title

    @property
    def is_active(self) -> bool:
        return self.status == self.Status.ACTIVE

    def to_snapshot(self) -> ListingSnapshot:
        return ListingSnapshot(
            id=str(self.pk),
            max_guests=self.max_guests,
            base_price=int(self.base_price),
            cleaning_fee=int(self.cleaning_fee or 0),
            service_fee=int(self.service_fee) if self.service_fee is not None else None,
            allows_pets=self.allows_pets,
            instant_bookable=self.instant_bookable,
            is_active=self.is_active,
            property_type=self.property_type,
            currency=self.currency,
        )


class BlockedPeriod(models.Model):
    """Host-blocked calendar period [start_date, end_date)."""

    class Kind(models.TextChoices):
        BLOCKED = "blocked", _("Blocked by host")
        MAINTENANCE = "maintenance", _("Maintenance")

    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name="blocked_periods",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    kind = models.CharField(max_length=20, choices=Kind.choices, default=Kind.BLOCKED)
    reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Blocked period")
        verbose_name_plural = _("Blocked periods")
        ordering = ["start_date"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gt=models.F("start_date")),
                name="blocked_period_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["listing", "start_date", "end_date"], name="blocked_period_range_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.listing_id}: {self.start_date} - {self.end_date}"

    def to_interval(self) -> BlockedInterval:
        return BlockedInterval(
            dates=DateRange(self.start_date, self.end_date),
            reason=self.reason or self.kind,
        )
