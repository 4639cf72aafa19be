"""Promotion models: coupon definitions and their redemptions."""

from __future__ import annotations

import uuid

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.promotions.domain.entities import (
    DiscountType,
    Promotion as PromotionSnapshot,
    PromotionSource,
    PromotionType,
    normalize_code,
)


class Promotion(models.Model):
    """Admin or host coupon code."""

    class DiscountTypeChoices(models.TextChoices):
        PERCENTAGE = "percentage", _("Percentage")
        FIXED_AMOUNT = "fixed_amount", _("Fixed amount")

    class PromotionTypeChoices(models.TextChoices):
        GENERAL = "general", _("General")
        FIRST_BOOKING = "first_booking", _("First booking")
        SEASONAL = "seasonal", _("Seasonal")
        FLASH_SALE = "flash_sale", _("Flash sale")

    class SourceChoices(models.TextChoices):
        ADMIN = "admin", _("Platform")
        HOST = "host", _("Host")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    source = models.CharField(max_length=10, choices=SourceChoices.choices, default=SourceChoices.ADMIN)
    host = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="host_promotions",
    )
    promotion_type = models.CharField(
        max_length=20,
        choices=PromotionTypeChoices.choices,
        default=PromotionTypeChoices.GENERAL,
    )
    discount_type = models.CharField(max_length=20, choices=DiscountTypeChoices.choices)
    discount_value = models.PositiveBigIntegerField(validators=[MinValueValidator(1)])
    max_discount = models.PositiveBigIntegerField(null=True, blank=True)
    min_booking_value = models.PositiveBigIntegerField(null=True, blank=True)
    max_uses = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text=_("Empty or 0 means unlimited."),
    )
    max_uses_per_user = models.PositiveIntegerField(null=True, blank=True, validators=[MinValueValidator(1)])
    used_count = models.PositiveIntegerField(default=0)
    valid_from = models.DateTimeField(null=True, blank=True)
    valid_until = models.DateTimeField(null=True, blank=True)
    property_types = models.JSONField(default=list, blank=True)
    listing_ids = models.JSONField(default=list, blank=True)
    user_ids = models.JSONField(default=list, blank=True)
    membership_tiers = models.JSONField(default=list, blank=True)
    stack_with_membership = models.BooleanField(default=True)
    stack_with_promotions = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Promotion")
        verbose_name_plural = _("Promotions")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(max_uses__isnull=True)
                    | models.Q(max_uses=0)
                    | models.Q(used_count__lte=models.F("max_uses"))
                ),
                name="promotion_used_within_cap",
            ),
        ]
        indexes = [
            models.Index(fields=["is_active", "valid_until"], name="promotion_active_idx"),
        ]

    def __str__(self) -> str:
        return self.code

    def save(self, *args, **kwargs):
        self.code = normalize_code(self.code)
        super().save(*args, **kwargs)

    def to_domain(self) -> PromotionSnapshot:
        return PromotionSnapshot(
            id=str(self.pk),
            code=self.code,
            name=self.name,
            discount_type=DiscountType(self.discount_type),
            discount_value=int(self.discount_value),
            promotion_type=PromotionType(self.promotion_type),
            source=PromotionSource(self.source),
            max_discount=self.max_discount,
            min_booking_value=self.min_booking_value,
            max_uses=self.max_uses,
            max_uses_per_user=self.max_uses_per_user,
            used_count=self.used_count,
            valid_from=self.valid_from,
            valid_until=self.valid_until,
            property_types=frozenset(self.property_types or []),
            listing_ids=frozenset(str(value) for value in self.listing_ids or []),
            user_ids=frozenset(str(value) for value in self.user_ids or []),
            membership_tiers=frozenset(self.membership_tiers or []),
            stack_with_membership=self.stack_with_membership,
            stack_with_promotions=self.stack_with_promotions,
            is_active=self.is_active,
        )


class PromotionRedemption(models.Model):
    """One use of a promotion by one redeemer for one booking."""

    class Status(models.TextChoices):
        USED = "used", _("Used")
        RELEASED = "released", _("Released")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    promotion = models.ForeignKey(Promotion, on_delete=models.PROTECT, related_name="redemptions")
    redeemer_key = models.CharField(max_length=255)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="promotion_redemptions",
    )
    # plain UUID so promotions does not depend on the bookings app
    booking_id = models.UUIDField()
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.USED)
    amount = models.PositiveBigIntegerField(default=0)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Promotion redemption")
        verbose_name_plural = _("Promotion redemptions")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["promotion", "redeemer_key", "booking_id"],
                name="unique_redemption_per_booking",
            ),
        ]
        indexes = [
            models.Index(fields=["promotion", "redeemer_key", "status"], name="redemption_redeemer_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.promotion_id} by {self.redeemer_key} ({self.status})"
