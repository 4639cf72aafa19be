import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Promotion",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(max_length=64, unique=True)),
                ("name", models.CharField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "source",
                    models.CharField(
                        choices=[("admin", "Platform"), ("host", "Host")], default="admin", max_length=10
                    ),
                ),
                (
                    "promotion_type",
                    models.CharField(
                        choices=[
                            ("general", "General"),
                            ("first_booking", "First booking"),
                            ("seasonal", "Seasonal"),
                            ("flash_sale", "Flash sale"),
                        ],
                        default="general",
                        max_length=20,
                    ),
                ),
                (
                    "discount_type",
                    models.CharField(
                        choices=[("percentage", "Percentage"), ("fixed_amount", "Fixed amount")], max_length=20
                    ),
                ),
                (
                    "discount_value",
                    models.PositiveBigIntegerField(validators=[django.core.validators.MinValueValidator(1)]),
                ),
                ("max_discount", models.PositiveBigIntegerField(blank=True, null=True)),
                ("min_booking_value", models.PositiveBigIntegerField(blank=True, null=True)),
                (
                    "max_uses",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Empty or 0 means unlimited.",
                        null=True,
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "max_uses_per_user",
                    models.PositiveIntegerField(
                        blank=True, null=True, validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("used_count", models.PositiveIntegerField(default=0)),
                ("valid_from", models.DateTimeField(blank=True, null=True)),
                ("valid_until", models.DateTimeField(blank=True, null=True)),
                ("property_types", models.JSONField(blank=True, default=list)),
                ("listing_ids", models.JSONField(blank=True, default=list)),
                ("user_ids", models.JSONField(blank=True, default=list)),
                ("membership_tiers", models.JSONField(blank=True, default=list)),
                ("stack_with_membership", models.BooleanField(default=True)),
                ("stack_with_promotions", models.BooleanField(default=False)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "host",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="host_promotions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Promotion",
                "verbose_name_plural": "Promotions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["is_active", "valid_until"], name="promotion_active_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("max_uses__isnull", True),
                            ("max_uses", 0),
                            ("used_count__lte", models.F("max_uses")),
                            _connector="OR",
                        ),
                        name="promotion_used_within_cap",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PromotionRedemption",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("redeemer_key", models.CharField(max_length=255)),
                ("booking_id", models.UUIDField()),
                (
                    "status",
                    models.CharField(
                        choices=[("used", "Used"), ("released", "Released")], default="used", max_length=10
                    ),
                ),
                ("amount", models.PositiveBigIntegerField(default=0)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "promotion",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="promotions.promotion",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="promotion_redemptions",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Promotion redemption",
                "verbose_name_plural": "Promotion redemptions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["promotion", "redeemer_key", "status"], name="redemption_redeemer_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("promotion", "redeemer_key", "booking_id"),
                        name="unique_redemption_per_booking",
                    ),
                ],
            },
        ),
    ]
