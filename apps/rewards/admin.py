"""Admin registration for loyalty rewards."""

from __future__ import annotations

from django.contrib import admin

from .models import RewardAction, RewardTier, RewardTransaction, UserRewardState


@admin.register(RewardAction)
class RewardActionAdmin(admin.ModelAdmin):
    list_display = ("slug", "title", "points_base", "cooldown_hours", "max_times_per_week", "is_active")
    list_filter = ("is_active", "is_recurring")
    search_fields = ("slug", "title")


@admin.register(RewardTier)
class RewardTierAdmin(admin.ModelAdmin):
    list_display = ("tier", "name", "min_points", "bonus_multiplier")


@admin.register(UserRewardState)
class UserRewardStateAdmin(admin.ModelAdmin):
    list_display = ("user", "points", "tier", "updated_at")
    list_filter = ("tier",)
    search_fields = ("user__email", "user__username")
    # balances move only through the ledger
    readonly_fields = ("user", "points", "tier", "updated_at")


@admin.register(RewardTransaction)
class RewardTransactionAdmin(admin.ModelAdmin):
    list_display = ("user", "action", "points", "balance_after", "reference_id", "created_at")
    list_filter = ("action",)
    search_fields = ("user__email", "reference_id")
    readonly_fields = (
        "user",
        "action",
        "reference_id",
        "points",
        "balance_after",
        "metadata",
        "created_at",
    )

    def has_delete_permission(self, request, obj=None):
        return False
