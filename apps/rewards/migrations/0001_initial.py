import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="RewardAction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("slug", models.SlugField(max_length=64, unique=True)),
                ("title", models.CharField(max_length=255)),
                ("description", models.TextField(blank=True)),
                ("points_base", models.PositiveIntegerField()),
                ("cooldown_hours", models.PositiveIntegerField(blank=True, null=True)),
                ("max_times_per_week", models.PositiveIntegerField(blank=True, null=True)),
                ("is_recurring", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Reward action",
                "verbose_name_plural": "Reward actions",
                "ordering": ["slug"],
            },
        ),
        migrations.CreateModel(
            name="RewardTier",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("tier", models.CharField(max_length=20, unique=True)),
                ("name", models.CharField(max_length=64)),
                ("min_points", models.PositiveBigIntegerField(unique=True)),
                (
                    "bonus_multiplier",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("1.00"),
                        max_digits=4,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
            ],
            options={
                "verbose_name": "Reward tier",
                "verbose_name_plural": "Reward tiers",
                "ordering": ["min_points"],
            },
        ),
        migrations.CreateModel(
            name="UserRewardState",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("points", models.BigIntegerField(default=0)),
                ("tier", models.CharField(default="BRONZE", max_length=20)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reward_state",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Reward balance",
                "verbose_name_plural": "Reward balances",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("points__gte", 0)), name="reward_points_non_negative"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RewardTransaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("reference_id", models.CharField(blank=True, max_length=128, null=True)),
                ("points", models.BigIntegerField()),
                ("balance_after", models.BigIntegerField()),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                (
                    "action",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="rewards.rewardaction",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reward_transactions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Reward transaction",
                "verbose_name_plural": "Reward transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "action", "created_at"], name="reward_tx_user_action_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("reference_id__isnull", False)),
                        fields=("user", "action", "reference_id"),
                        name="unique_reward_per_reference",
                    ),
                ],
            },
        ),
    ]
