"""
Rewards Domain Entities

- RewardAction: catalog entry for something that earns points
- RewardTier / TierTable: ascending loyalty thresholds with bonus multipliers
- UserRewardState: cached balance and tier for one user
- RewardTransaction: immutable, append-only ledger entry
- CreditResult: outcome of a successful credit
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Tuple


@dataclass(frozen=True)
class RewardAction:
    slug: str
    points_base: int
    title: str = ''
    cooldown_hours: int | None = None
    max_times_per_week: int | None = None
    is_recurring: bool = False
    is_active: bool = True

    def __post_init__(self):
        if self.points_base < 0:
            raise ValueError("points_base cannot be negative")


@dataclass(frozen=True)
class RewardTier:
    tier: str
    min_points: int
    bonus_multiplier: Decimal = Decimal('1.0')
    name: str = ''


DEFAULT_TIERS = (
    RewardTier('BRONZE', 0, Decimal('1.0'), 'Bronze'),
    RewardTier('SILVER', 500, Decimal('1.1'), 'Silver'),
    RewardTier('GOLD', 2000, Decimal('1.25'), 'Gold'),
    RewardTier('PLATINUM', 5000, Decimal('1.5'), 'Platinum'),
    RewardTier('DIAMOND', 10000, Decimal('2.0'), 'Diamond'),
)


class TierTable:
    """Tier is a pure function of the balance via ascending thresholds"""

    def __init__(self, tiers: Iterable[RewardTier] = DEFAULT_TIERS):
        self.tiers: Tuple[RewardTier, ...] = tuple(sorted(tiers, key=lambda t: t.min_points))
        if not self.tiers:
            raise ValueError("Tier table cannot be empty")

    def for_points(self, points: int) -> RewardTier:
        """Highest tier whose threshold the balance meets or exceeds"""
        selected = self.tiers[0]
        for tier in self.tiers:
            if points >= tier.min_points:
                selected = tier
            else:
                break
        return selected

    def get(self, code: str | None) -> RewardTier | None:
        for tier in self.tiers:
            if tier.tier == code:
                return tier
        return None

    def rank(self, code: str | None) -> int:
        for index, tier in enumerate(self.tiers):
            if tier.tier == code:
                return index
        return -1

    def multiplier(self, code: str | None) -> Decimal:
        """Unknown tiers earn at the base rate"""
        tier = self.get(code)
        return tier.bonus_multiplier if tier else Decimal('1')

    def next_tier(self, code: str | None) -> RewardTier | None:
        index = self.rank(code)
        if 0 <= index < len(self.tiers) - 1:
            return self.tiers[index + 1]
        return None

    def __iter__(self):
        return iter(self.tiers)


@dataclass
class UserRewardState:
    user_id: str
    points: int = 0
    tier: str = 'BRONZE'

    def __post_init__(self):
        if self.points < 0:
            raise ValueError("Point balance cannot be negative")


@dataclass(frozen=True)
class RewardTransaction:
    user_id: str
    action_slug: str
    points: int
    balance_after: int
    created_at: datetime
    reference_id: str | None = None
    id: str | None = None
    metadata: dict = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class CreditResult:
    transaction: RewardTransaction
    balance: int
    tier: str
    previous_tier: str
    tier_upgraded: bool = False

    ok = True

    @property
    def points(self) -> int:
        return self.transaction.points
