"""Database-backed rewards ledger tests."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from apps.bookings.models import Booking
from apps.listings.models import Listing
from apps.rewards.application.command_handlers import CreditPointsCommand, CreditPointsHandler
from apps.rewards.domain import ledger as rules
from apps.rewards.domain.events import RewardEarned, TierUpgraded
from apps.rewards.domain.ledger import RewardsLedger
from apps.rewards.models import RewardAction, RewardTier, RewardTransaction, UserRewardState
from apps.rewards.repositories import DjangoRewardsRepository
from apps.rewards.tasks import BOOKING_COMPLETED_ACTION, credit_booking_completion
from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.results import ErrorCategory


class DjangoRewardsRepositoryTests(TestCase):

    def setUp(self) -> None:
        self.user = get_user_model().objects.create_user(username="guest", email="guest@example.com", password="x")
        self.action = RewardAction.objects.create(slug="review-written", title="Review", points_base=100)
        self.repo = DjangoRewardsRepository()
        self.ledger = RewardsLedger(self.repo.tier_table())

    def test_falls_back_to_default_tiers(self) -> None:
        self.assertEqual([tier.tier for tier in self.repo.tier_table()][0], "BRONZE")
        self.assertEqual(len(self.repo.tier_table().tiers), 5)

    def test_configured_tiers_win(self) -> None:
        RewardTier.objects.create(tier="BASIC", name="Basic", min_points=0)
        RewardTier.objects.create(tier="VIP", name="VIP", min_points=100, bonus_multiplier=Decimal("3.00"))

        table = self.repo.tier_table()

        self.assertEqual([tier.tier for tier in table], ["BASIC", "VIP"])
        self.assertEqual(table.multiplier("VIP"), Decimal("3.00"))

    def test_credit_writes_transaction_and_balance(self) -> None:
        result = self.repo.credit(self.user.pk, "review-written", self.ledger, timezone.now(), reference_id="r1")

        self.assertTrue(result.ok)
        self.assertEqual(result.points, 100)
        state = UserRewardState.objects.get(user=self.user)
        self.assertEqual(state.points, 100)
        record = RewardTransaction.objects.get(user=self.user)
        self.assertEqual(record.balance_after, 100)
        self.assertEqual(record.metadata["tier_multiplier"], "1.0")

    def test_duplicate_reference(self) -> None:
        first = self.repo.credit(self.user.pk, "review-written", self.ledger, timezone.now(), reference_id="r1")
        again = self.repo.credit(self.user.pk, "review-written", self.ledger, timezone.now(), reference_id="r1")

        self.assertEqual(again.category, ErrorCategory.DUPLICATE_REWARD)
        self.assertEqual(again.details["transaction_id"], first.transaction.id)
        self.assertEqual(UserRewardState.objects.get(user=self.user).points, 100)
        self.assertEqual(RewardTransaction.objects.count(), 1)

    def test_without_reference_every_credit_counts(self) -> None:
        self.repo.credit(self.user.pk, "review-written", self.ledger, timezone.now())
        self.repo.credit(self.user.pk, "review-written", self.ledger, timezone.now())

        self.assertEqual(UserRewardState.objects.get(user=self.user).points, 200)

    def test_blank_reference_is_no_reference(self) -> None:
        first = self.repo.credit(self.user.pk, "review-written", self.ledger, timezone.now(), reference_id="")
        second = self.repo.credit(self.user.pk, "review-written", self.ledger, timezone.now(), reference_id="  ")

        self.assertTrue(first.ok and second.ok)
        self.assertIsNone(first.transaction.reference_id)
        self.assertEqual(UserRewardState.objects.get(user=self.user).points, 200)
        self.assertEqual(RewardTransaction.objects.filter(reference_id__isnull=True).count(), 2)

    def test_tier_upgrade_is_stored(self) -> None:
        UserRewardState.objects.create(user=self.user, points=450)

        result = self.repo.credit(self.user.pk, "review-written", self.ledger, timezone.now())

        self.assertTrue(result.tier_upgraded)
        self.assertEqual(UserRewardState.objects.get(user=self.user).tier, "SILVER")

    def test_cooldown_uses_stored_history(self) -> None:
        RewardAction.objects.create(slug="daily-check-in", title="Check-in", points_base=5, cooldown_hours=24)
        now = timezone.now()

        self.repo.credit(self.user.pk, "daily-check-in", self.ledger, now)
        again = self.repo.credit(self.user.pk, "daily-check-in", self.ledger, now + timedelta(hours=1))

        self.assertEqual(again.reason, rules.COOLDOWN)

    def test_unknown_user_and_action(self) -> None:
        missing_user = self.repo.credit(999_999, "review-written", self.ledger, timezone.now())
        bad_id = self.repo.credit("not-a-number", "review-written", self.ledger, timezone.now())
        missing_action = self.repo.credit(self.user.pk, "nope", self.ledger, timezone.now())

        self.assertEqual(missing_user.reason, rules.USER_NOT_FOUND)
        self.assertEqual(bad_id.reason, rules.USER_NOT_FOUND)
        self.assertEqual(missing_action.reason, rules.ACTION_NOT_FOUND)
        self.assertFalse(RewardTransaction.objects.exists())

    def test_get_state(self) -> None:
        self.assertEqual(self.repo.get_state(self.user.pk).points, 0)
        self.assertIsNone(self.repo.get_state(999_999))


class CreditPointsHandlerTests(TestCase):

    def setUp(self) -> None:
        self.user = get_user_model().objects.create_user(username="guest", password="x")
        RewardAction.objects.create(slug="booking-completed", title="Stay", points_base=400)
        UserRewardState.objects.create(user=self.user, points=200)
        self.bus = MessageBus()
        self.received = []
        self.bus.subscribe(RewardEarned, self.received.append)
        self.bus.subscribe(TierUpgraded, self.received.append)

    def test_events_are_published_after_commit(self) -> None:
        handler = CreditPointsHandler(DjangoRewardsRepository(), uow_factory=lambda: DjangoUnitOfWork(self.bus))

        with self.captureOnCommitCallbacks(execute=True):
            result = handler.handle(CreditPointsCommand(user_id=str(self.user.pk), action_slug="booking-completed"))

        self.assertEqual(result.balance, 600)
        self.assertEqual([type(event) for event in self.received], [RewardEarned, TierUpgraded])


class CreditBookingCompletionTaskTests(TestCase):

    def setUp(self) -> None:
        self.user = get_user_model().objects.create_user(username="guest", password="x")
        RewardAction.objects.create(slug=BOOKING_COMPLETED_ACTION, title="Stay", points_base=400)
        self.listing = Listing.objects.create(
            title="Garden homestay",
            status=Listing.Status.ACTIVE,
            base_price=500_000,
            max_guests=2,
        )

    def _booking(self, **overrides) -> Booking:
        values = {
            "booking_code": f"BK{Booking.objects.count():06d}",
            "listing": self.listing,
            "guest": self.user,
            "check_in": date(2025, 3, 10),
            "check_out": date(2025, 3, 12),
            "status": Booking.Status.COMPLETED,
            "base_price_total": 1_000_000,
            "total_price": 1_000_000,
        }
        values.update(overrides)
        return Booking.objects.create(**values)

    def test_completed_stay_is_credited_once(self) -> None:
        booking = self._booking()

        first = credit_booking_completion(str(booking.pk))
        second = credit_booking_completion(str(booking.pk))

        self.assertEqual(first, {"status": "credited", "points": 400, "balance": 400})
        self.assertEqual(second, {"status": "duplicate"})
        self.assertEqual(UserRewardState.objects.get(user=self.user).points, 400)

    def test_skips_unfinished_and_walk_in_stays(self) -> None:
        pending = self._booking(status=Booking.Status.PENDING)
        walk_in = self._booking(guest=None, contact_name="Walk-in", contact_email="w@example.com")

        self.assertEqual(credit_booking_completion(str(pending.pk)), {"status": "skipped"})
        self.assertEqual(credit_booking_completion(str(walk_in.pk)), {"status": "walk_in"})
        self.assertEqual(credit_booking_completion("5f0c1d1e-0000-4000-8000-000000000000"), {"status": "missing"})
