"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "listing",
        "guest",
        "contact_name",
        "status",
        "check_in",
        "check_out",
        "total_price",
        "promotion_code",
        "created_at",
    )
    list_filter = ("status", "guest_type", "instant_book", "check_in", "check_out")
    search_fields = ("booking_code", "listing__title", "guest__email", "contact_email", "contact_phone")
    readonly_fields = (
        "booking_code",
        "created_at",
        "updated_at",
        "nightly_rate",
        "total_nights",
        "base_price_total",
        "cleaning_fee",
        "service_fee",
        "membership_discount",
        "promotion_discount",
        "discount_amount",
        "total_price",
        "applied_promotions",
    )
