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
            name="Listing",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("pending", "Under review"),
                            ("active", "Active"),
                            ("inactive", "Inactive"),
                            ("blocked", "Blocked by moderation"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                (
                    "property_type",
                    models.CharField(
                        choices=[
                            ("apartment", "Apartment"),
                            ("house", "House"),
                            ("villa", "Villa"),
                            ("homestay", "Homestay"),
                            ("bungalow", "Bungalow"),
                            ("condo", "Condo"),
                        ],
                        default="homestay",
                        max_length=20,
                    ),
                ),
                (
                    "max_guests",
                    models.PositiveSmallIntegerField(
                        default=2, validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("allows_pets", models.BooleanField(default=False)),
                ("base_price", models.PositiveBigIntegerField(help_text="Nightly rate in whole currency units.")),
                ("cleaning_fee", models.PositiveBigIntegerField(default=0)),
                (
                    "service_fee",
                    models.PositiveBigIntegerField(
                        blank=True,
                        help_text="Flat service fee override. Empty means the platform rate applies.",
                        null=True,
                    ),
                ),
                ("currency", models.CharField(default="VND", max_length=3)),
                ("instant_bookable", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "host",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="listings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Listing",
                "verbose_name_plural": "Listings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="listing_status_idx"),
                    models.Index(fields=["host", "status"], name="listing_host_status_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BlockedPeriod",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                (
                    "kind",
                    models.CharField(
                        choices=[("blocked", "Blocked by host"), ("maintenance", "Maintenance")],
                        default="blocked",
                        max_length=20,
                    ),
                ),
                ("reason", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="blocked_periods",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Blocked period",
                "verbose_name_plural": "Blocked periods",
                "ordering": ["start_date"],
                "indexes": [
                    models.Index(fields=["listing", "start_date", "end_date"], name="blocked_period_range_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("end_date__gt", models.F("start_date"))),
                        name="blocked_period_valid_dates",
                    ),
                ],
            },
        ),
    ]
