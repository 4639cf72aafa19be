"""Admin registration for promotions."""

from __future__ import annotations

from django.contrib import admin

from .models import Promotion, PromotionRedemption


@admin.register(Promotion)
class PromotionAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "source",
        "promotion_type",
        "discount_type",
        "discount_value",
        "used_count",
        "max_uses",
        "valid_from",
        "valid_until",
        "is_active",
    )
    list_filter = ("is_active", "source", "promotion_type", "discount_type")
    search_fields = ("code", "name")
    # used_count only moves through redemption
    readonly_fields = ("used_count", "created_at", "updated_at")

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(PromotionRedemption)
class PromotionRedemptionAdmin(admin.ModelAdmin):
    list_display = ("promotion", "redeemer_key", "booking_id", "status", "amount", "created_at")
    list_filter = ("status",)
    search_fields = ("promotion__code", "redeemer_key", "booking_id")
    readonly_fields = ("promotion", "redeemer_key", "user", "booking_id", "amount", "metadata", "created_at")
