from decimal import Decimal

from django.db import migrations

TIERS = [
    ("BRONZE", "Bronze", 0, Decimal("1.00")),
    ("SILVER", "Silver", 500, Decimal("1.10")),
    ("GOLD", "Gold", 2000, Decimal("1.25")),
    ("PLATINUM", "Platinum", 5000, Decimal("1.50")),
    ("DIAMOND", "Diamond", 10000, Decimal("2.00")),
]

ACTIONS = [
    # slug, title, points_base, cooldown_hours, max_times_per_week, is_recurring
    ("booking-completed", "Complete a stay", 400, None, None, True),
    ("review-written", "Review a stay", 100, None, None, True),
    ("profile-completed", "Complete your profile", 50, None, None, False),
    ("daily-check-in", "Daily check-in", 5, 24, 7, True),
]


def seed(apps, schema_editor):
    RewardTier = apps.get_model("rewards", "RewardTier")
    RewardAction = apps.get_model("rewards", "RewardAction")
    for tier, name, min_points, multiplier in TIERS:
        RewardTier.objects.update_or_create(
            tier=tier,
            defaults={"name": name, "min_points": min_points, "bonus_multiplier": multiplier},
        )
    for slug, title, points, cooldown, weekly, recurring in ACTIONS:
        RewardAction.objects.update_or_create(
            slug=slug,
            defaults={
                "title": title,
                "points_base": points,
                "cooldown_hours": cooldown,
                "max_times_per_week": weekly,
                "is_recurring": recurring,
            },
        )


def unseed(apps, schema_editor):
    apps.get_model("rewards", "RewardAction").objects.filter(slug__in=[row[0] for row in ACTIONS]).delete()
    apps.get_model("rewards", "RewardTier").objects.filter(tier__in=[row[0] for row in TIERS]).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("rewards", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed, unseed),
    ]
