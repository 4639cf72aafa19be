"""Loyalty rewards models."""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from apps.rewards.domain.entities import (
    RewardAction as RewardActionSnapshot,
    RewardTier as RewardTierSnapshot,
    RewardTransaction as RewardTransactionRecord,
    UserRewardState as UserRewardStateSnapshot,
)


class RewardAction(models.Model):
    """Something a guest does that earns points."""

    slug = models.SlugField(max_length=64, unique=True)
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    points_base = models.PositiveIntegerField()
    cooldown_hours = models.PositiveIntegerField(null=True, blank=True)
    max_times_per_week = models.PositiveIntegerField(null=True, blank=True)
    is_recurring = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Reward action")
        verbose_name_plural = _("Reward actions")
        ordering = ["slug"]

    def __str__(self) -> str:
        return f"{self.slug} (+{self.points_base})"

    def to_domain(self) -> RewardActionSnapshot:
        return RewardActionSnapshot(
            slug=self.slug,
            points_base=self.points_base,
            title=self.title,
            cooldown_hours=self.cooldown_hours,
            max_times_per_week=self.max_times_per_week,
            is_recurring=self.is_recurring,
            is_active=self.is_active,
        )


class RewardTier(models.Model):
    """Loyalty tier threshold and earning bonus."""

    tier = models.CharField(max_length=20, unique=True)
    name = models.CharField(max_length=64)
    min_points = models.PositiveBigIntegerField(unique=True)
    bonus_multiplier = models.DecimalField(
        max_digits=4,
        decimal_places=2,
        default=Decimal("1.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )

    class Meta:
        verbose_name = _("Reward tier")
        verbose_name_plural = _("Reward tiers")
        ordering = ["min_points"]

    def __str__(self) -> str:
        return f"{self.name} ({self.min_points}+)"

    def to_domain(self) -> RewardTierSnapshot:
        return RewardTierSnapshot(
            tier=self.tier,
            min_points=int(self.min_points),
            bonus_multiplier=Decimal(self.bonus_multiplier),
            name=self.name,
        )


class UserRewardState(models.Model):
    """Cached balance and tier; the transaction log is the source of truth."""

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reward_state",
    )
    points = models.BigIntegerField(default=0)
    tier = models.CharField(max_length=20, default="BRONZE")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Reward balance")
        verbose_name_plural = _("Reward balances")
        constraints = [
            models.CheckConstraint(condition=models.Q(points__gte=0), name="reward_points_non_negative"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}: {self.points} ({self.tier})"

    def to_domain(self) -> UserRewardStateSnapshot:
        return UserRewardStateSnapshot(user_id=str(self.user_id), points=int(self.points), tier=self.tier)


class RewardTransaction(models.Model):
    """Append-only ledger entry."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reward_transactions",
    )
    action = models.ForeignKey(RewardAction, on_delete=models.PROTECT, related_name="transactions")
    reference_id = models.CharField(max_length=128, null=True, blank=True)
    points = models.BigIntegerField()
    balance_after = models.BigIntegerField()
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Reward transaction")
        verbose_name_plural = _("Reward transactions")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "action", "reference_id"],
                condition=models.Q(reference_id__isnull=False),
                name="unique_reward_per_reference",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "action", "created_at"], name="reward_tx_user_action_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} +{self.points} ({self.action_id})"

    def to_domain(self) -> RewardTransactionRecord:
        return RewardTransactionRecord(
            id=str(self.pk),
            user_id=str(self.user_id),
            action_slug=self.action.slug,
            points=int(self.points),
            balance_after=int(self.balance_after),
            created_at=self.created_at,
            reference_id=self.reference_id,
            metadata=dict(self.metadata or {}),
        )
