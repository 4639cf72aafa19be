"""
Rewards Ledger (rules)

Pure rules for crediting loyalty points. The repositories call plan_credit
while holding the user's reward-state lock, then persist the plan in the
same atomic step, so balance_after is never computed from a stale read.

    points = max(0, round(points_base * tier multiplier * custom multiplier))

Tiers only move upward on credit. There is no automatic downgrade path.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from shared.domain.results import ErrorCategory, Rejection
from apps.bookings.domain.pricing import round_amount
from apps.rewards.domain.entities import (
    RewardAction,
    RewardTransaction,
    TierTable,
    UserRewardState,
)

# Rejection reasons
DUPLICATE = 'DUPLICATE'
ACTION_INACTIVE = 'ACTION_INACTIVE'
ACTION_NOT_FOUND = 'ACTION_NOT_FOUND'
USER_NOT_FOUND = 'USER_NOT_FOUND'
COOLDOWN = 'COOLDOWN'
WEEKLY_LIMIT = 'WEEKLY_LIMIT'


@dataclass(frozen=True)
class CreditPlan:
    points: int
    balance_after: int
    tier: str
    previous_tier: str
    tier_multiplier: Decimal
    custom_multiplier: Decimal

    @property
    def tier_upgraded(self) -> bool:
        return self.tier != self.previous_tier


def duplicate(existing: RewardTransaction) -> Rejection:
    return Rejection(
        category=ErrorCategory.DUPLICATE_REWARD,
        reason=DUPLICATE,
        message="Points already awarded for this action.",
        details={'transaction_id': existing.id, 'points': existing.points},
    )


def rejected(reason: str, message: str, **details) -> Rejection:
    return Rejection(category=ErrorCategory.VALIDATION, reason=reason, message=message, details=details)


def reference_key(reference_id) -> str | None:
    """Idempotency key for a credit, None when the caller gave no reference"""
    if reference_id is None:
        return None
    return str(reference_id).strip() or None


class RewardsLedger:

    def __init__(self, tiers: TierTable | None = None):
        self.tiers = tiers or TierTable()

    def compute_points(self, action: RewardAction, tier: str | None, multiplier=1) -> int:
        raw = Decimal(action.points_base) * self.tiers.multiplier(tier) * Decimal(str(multiplier))
        return max(0, round_amount(raw))

    def resolve_tier(self, balance: int, current: str | None) -> str:
        """Upgrade only: a lower computed tier keeps the stored one"""
        candidate = self.tiers.for_points(balance)
        if current and self.tiers.rank(current) >= self.tiers.rank(candidate.tier):
            return current
        return candidate.tier

    def plan_credit(
        self,
        state: UserRewardState | None,
        action: RewardAction | None,
        now: datetime,
        reference_id: str | None = None,
        existing: RewardTransaction | None = None,
        history: Iterable[RewardTransaction] = (),
        multiplier=1,
    ) -> CreditPlan | Rejection:
        """
        Decide a credit

        `existing` is the transaction already stored under the idempotency
        key, `history` the user's earlier transactions for this action
        (used for cooldown and weekly limits).
        """
        if state is None:
            return rejected(USER_NOT_FOUND, "User not found.")
        if action is None:
            return rejected(ACTION_NOT_FOUND, "No reward configured for this action.")
        if not action.is_active:
            return rejected(ACTION_INACTIVE, "This reward action is currently inactive.", action=action.slug)
        if reference_id and existing is not None:
            return duplicate(existing)

        rejection = self.check_frequency(action, list(history), now)
        if rejection:
            return rejection

        multiplier = Decimal(str(multiplier))
        if multiplier < 0:
            multiplier = Decimal('0')
        points = self.compute_points(action, state.tier, multiplier)
        balance_after = state.points + points
        tier = self.resolve_tier(balance_after, state.tier) if points > 0 else state.tier

        return CreditPlan(
            points=points,
            balance_after=balance_after,
            tier=tier,
            previous_tier=state.tier,
            tier_multiplier=self.tiers.multiplier(state.tier),
            custom_multiplier=multiplier,
        )

    @staticmethod
    def check_frequency(action: RewardAction, history, now: datetime) -> Rejection | None:
        if action.cooldown_hours:
            window_start = now - timedelta(hours=action.cooldown_hours)
            recent = [tx for tx in history if tx.created_at > window_start]
            if recent:
                last = max(tx.created_at for tx in recent)
                return rejected(
                    COOLDOWN,
                    f"Action {action.slug} is on cooldown.",
                    available_at=(last + timedelta(hours=action.cooldown_hours)).isoformat(),
                )

        if action.max_times_per_week:
            week_start = now - timedelta(days=7)
            count = sum(1 for tx in history if tx.created_at > week_start)
            if count >= action.max_times_per_week:
                return rejected(
                    WEEKLY_LIMIT,
                    f"Action {action.slug} already credited {count} times this week.",
                    limit=action.max_times_per_week,
                )
        return None
