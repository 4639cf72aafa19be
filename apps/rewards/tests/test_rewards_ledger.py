"""Tests for point calculation, tier upgrades, idempotency and frequency limits."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from apps.rewards.application.command_handlers import CreditPointsCommand, CreditPointsHandler
from apps.rewards.domain import ledger as rules
from apps.rewards.domain.entities import CreditResult, RewardAction, RewardTier, TierTable, UserRewardState
from apps.rewards.domain.events import RewardEarned, TierUpgraded
from apps.rewards.domain.ledger import RewardsLedger
from apps.rewards.repositories import InMemoryRewardsRepository
from shared.application.uow import InMemoryUnitOfWork
from shared.domain.clock import FixedClock
from shared.domain.results import ErrorCategory

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

TWO_TIERS = TierTable([
    RewardTier("BRONZE", 0, Decimal("1.0")),
    RewardTier("SILVER", 500, Decimal("1.2")),
])

REVIEW = RewardAction(slug="review-written", points_base=250)
CHECK_IN = RewardAction(slug="daily-check-in", points_base=5, cooldown_hours=24, max_times_per_week=3)


def test_points_use_tier_multiplier() -> None:
    plan = RewardsLedger(TWO_TIERS).plan_credit(UserRewardState("7", points=600, tier="SILVER"), REVIEW, NOW)

    assert plan.points == 300
    assert plan.balance_after == 900
    assert plan.tier_multiplier == Decimal("1.2")


def test_custom_multiplier_and_rounding() -> None:
    ledger = RewardsLedger(TWO_TIERS)
    action = RewardAction(slug="promo-week", points_base=5)

    assert ledger.compute_points(action, "BRONZE", multiplier=1.5) == 8
    assert ledger.compute_points(action, "BRONZE", multiplier=-2) == 0
    assert ledger.compute_points(action, "UNKNOWN") == 5


def test_crossing_threshold_upgrades_tier() -> None:
    plan = RewardsLedger(TWO_TIERS).plan_credit(UserRewardState("7", points=400), REVIEW, NOW)

    assert plan.tier == "SILVER"
    assert plan.previous_tier == "BRONZE"
    assert plan.tier_upgraded


def test_tier_never_moves_down() -> None:
    ledger = RewardsLedger(TWO_TIERS)

    assert ledger.resolve_tier(10, "SILVER") == "SILVER"
    assert ledger.resolve_tier(600, "BRONZE") == "SILVER"


def test_zero_point_credit_keeps_tier() -> None:
    free = RewardAction(slug="free", points_base=0)

    plan = RewardsLedger(TWO_TIERS).plan_credit(UserRewardState("7", points=0, tier="BRONZE"), free, NOW)

    assert plan.points == 0
    assert plan.tier == "BRONZE"
    assert not plan.tier_upgraded


def test_tier_table_lookup() -> None:
    table = TierTable()

    assert table.for_points(0).tier == "BRONZE"
    assert table.for_points(1999).tier == "SILVER"
    assert table.for_points(2000).tier == "GOLD"
    assert table.for_points(10**9).tier == "DIAMOND"
    assert table.next_tier("DIAMOND") is None
    with pytest.raises(ValueError):
        TierTable([])


@pytest.mark.parametrize(
    "state, action, reason",
    [
        (None, REVIEW, rules.USER_NOT_FOUND),
        (UserRewardState("7"), None, rules.ACTION_NOT_FOUND),
        (UserRewardState("7"), RewardAction(slug="old", points_base=10, is_active=False), rules.ACTION_INACTIVE),
    ],
)
def test_rejections_are_validation_errors(state, action, reason) -> None:
    result = RewardsLedger().plan_credit(state, action, NOW)

    assert result.category is ErrorCategory.VALIDATION
    assert result.reason == reason


def test_cooldown_and_weekly_limit() -> None:
    repo = InMemoryRewardsRepository([CHECK_IN])
    repo.add_user("7")
    ledger = RewardsLedger()

    assert repo.credit("7", CHECK_IN.slug, ledger, NOW).ok
    too_soon = repo.credit("7", CHECK_IN.slug, ledger, NOW + timedelta(hours=23))
    assert too_soon.reason == rules.COOLDOWN
    assert too_soon.details["available_at"] == (NOW + timedelta(hours=24)).isoformat()

    assert repo.credit("7", CHECK_IN.slug, ledger, NOW + timedelta(days=1)).ok
    assert repo.credit("7", CHECK_IN.slug, ledger, NOW + timedelta(days=2)).ok
    fourth = repo.credit("7", CHECK_IN.slug, ledger, NOW + timedelta(days=3))
    assert fourth.reason == rules.WEEKLY_LIMIT

    assert repo.credit("7", CHECK_IN.slug, ledger, NOW + timedelta(days=8)).ok


def test_same_reference_is_credited_once() -> None:
    repo = InMemoryRewardsRepository([REVIEW], tiers=TWO_TIERS)
    repo.add_user("7")
    ledger = RewardsLedger(TWO_TIERS)

    first = repo.credit("7", REVIEW.slug, ledger, NOW, reference_id="review-1")
    again = repo.credit("7", REVIEW.slug, ledger, NOW + timedelta(minutes=1), reference_id="review-1")

    assert isinstance(first, CreditResult)
    assert again.category is ErrorCategory.DUPLICATE_REWARD
    assert again.details["transaction_id"] == first.transaction.id
    assert repo.get_state("7").points == 250
    assert len(repo.transactions("7")) == 1


def test_blank_reference_is_not_an_idempotency_key() -> None:
    repo = InMemoryRewardsRepository([REVIEW])
    repo.add_user("7")
    ledger = RewardsLedger()

    first = repo.credit("7", REVIEW.slug, ledger, NOW, reference_id="")
    second = repo.credit("7", REVIEW.slug, ledger, NOW, reference_id=" ")

    assert first.ok and second.ok
    assert first.transaction.reference_id is None
    assert rules.reference_key(" booking-1 ") == "booking-1"
    assert repo.get_state("7").points == 500


def test_concurrent_duplicate_credits_pay_once() -> None:
    repo = InMemoryRewardsRepository([REVIEW])
    repo.add_user("7")
    ledger = RewardsLedger()
    barrier = threading.Barrier(8)
    results = []

    def worker() -> None:
        barrier.wait()
        results.append(repo.credit("7", REVIEW.slug, ledger, NOW, reference_id="booking-1"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(1 for r in results if r.ok) == 1
    assert repo.get_state("7").points == 250


def test_balance_matches_transaction_log() -> None:
    repo = InMemoryRewardsRepository([REVIEW])
    repo.add_user("7")
    ledger = RewardsLedger()

    for n in range(5):
        repo.credit("7", REVIEW.slug, ledger, NOW + timedelta(hours=n), reference_id=f"r{n}")

    log = repo.transactions("7")
    assert repo.get_state("7").points == sum(tx.points for tx in log)
    assert log[-1].balance_after == repo.get_state("7").points


class TestCreditPointsHandler:

    def setup_method(self) -> None:
        self.repo = InMemoryRewardsRepository([REVIEW], tiers=TWO_TIERS)
        self.repo.add_user("7", points=400)
        self.uows = []

    def _handler(self) -> CreditPointsHandler:
        def uow_factory():
            uow = InMemoryUnitOfWork()
            self.uows.append(uow)
            return uow

        return CreditPointsHandler(self.repo, clock=FixedClock(NOW), uow_factory=uow_factory)

    def test_events_after_credit(self) -> None:
        result = self._handler().handle(CreditPointsCommand(user_id="7", action_slug=REVIEW.slug, reference_id="r1"))

        assert result.ok
        assert result.tier == "SILVER"
        published = self.uows[0].published
        assert [type(event) for event in published] == [RewardEarned, TierUpgraded]
        assert published[0].points == 250
        assert published[1].new_tier == "SILVER"

    def test_duplicate_publishes_nothing(self) -> None:
        handler = self._handler()
        handler.handle(CreditPointsCommand(user_id="7", action_slug=REVIEW.slug, reference_id="r1"))

        again = handler.handle(CreditPointsCommand(user_id="7", action_slug=REVIEW.slug, reference_id="r1"))

        assert again.reason == rules.DUPLICATE
        assert self.uows[1].published == []

    def test_unknown_user(self) -> None:
        result = self._handler().handle(CreditPointsCommand(user_id="404", action_slug=REVIEW.slug))

        assert result.reason == rules.USER_NOT_FOUND
