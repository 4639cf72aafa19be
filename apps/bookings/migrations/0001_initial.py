import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("listings", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("booking_code", models.CharField(editable=False, max_length=20, unique=True)),
                (
                    "guest_type",
                    models.CharField(
                        choices=[("registered", "Registered user"), ("walk_in", "Walk-in guest")],
                        default="registered",
                        max_length=20,
                    ),
                ),
                ("contact_name", models.CharField(blank=True, max_length=255)),
                ("contact_email", models.EmailField(blank=True, max_length=254)),
                ("contact_phone", models.CharField(blank=True, max_length=32)),
                ("check_in", models.DateField()),
                ("check_out", models.DateField()),
                ("adults", models.PositiveSmallIntegerField(default=1)),
                ("children", models.PositiveSmallIntegerField(default=0)),
                ("infants", models.PositiveSmallIntegerField(default=0)),
                ("pets", models.PositiveSmallIntegerField(default=0)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Awaiting host confirmation"),
                            ("confirmed", "Confirmed"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                            ("expired", "Expired"),
                        ],
                        default="pending",
                        max_length=32,
                    ),
                ),
                ("instant_book", models.BooleanField(default=False)),
                ("nightly_rate", models.PositiveBigIntegerField(default=0)),
                ("total_nights", models.PositiveSmallIntegerField(default=1)),
                ("base_price_total", models.PositiveBigIntegerField(default=0)),
                ("cleaning_fee", models.PositiveBigIntegerField(default=0)),
                ("service_fee", models.PositiveBigIntegerField(default=0)),
                ("membership_discount", models.PositiveBigIntegerField(default=0)),
                ("promotion_discount", models.PositiveBigIntegerField(default=0)),
                ("discount_amount", models.PositiveBigIntegerField(default=0)),
                ("total_price", models.PositiveBigIntegerField(default=0)),
                ("currency", models.CharField(default="VND", max_length=3)),
                ("promotion_code", models.CharField(blank=True, max_length=64)),
                ("applied_promotions", models.JSONField(blank=True, default=list)),
                ("special_requests", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "guest",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "listing",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="listings.listing",
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["listing", "check_in", "check_out"], name="booking_listing_dates_idx"),
                    models.Index(fields=["status"], name="booking_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("check_out__gt", models.F("check_in"))),
                        name="booking_valid_dates",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            (
                                "total_price",
                                models.F("base_price_total")
                                + models.F("cleaning_fee")
                                + models.F("service_fee")
                                - models.F("discount_amount"),
                            )
                        ),
                        name="booking_total_identity",
                    ),
                ],
            },
        ),
    ]
