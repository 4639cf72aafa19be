"""Admin registrations for listings."""

from __future__ import annotations

from django.contrib import admin

from .models import BlockedPeriod, Listing


class BlockedPeriodInline(admin.TabularInline):
    model = BlockedPeriod
    extra = 0
    fields = ("start_date", "end_date", "kind", "reason")


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "property_type",
        "status",
        "base_price",
        "cleaning_fee",
        "max_guests",
        "instant_bookable",
        "host",
    )
    list_filter = ("status", "property_type", "instant_bookable", "allows_pets")
    search_fields = ("title", "host__email")
    inlines = [BlockedPeriodInline]


@admin.register(BlockedPeriod)
class BlockedPeriodAdmin(admin.ModelAdmin):
    list_display = ("listing", "start_date", "end_date", "kind", "reason")
    list_filter = ("kind",)
    search_fields = ("listing__title", "reason")
