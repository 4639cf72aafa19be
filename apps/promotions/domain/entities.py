"""
Promotion Domain Entities

- Promotion: snapshot of an admin or host coupon
- AppliedDiscount: one discount line already on a booking
- PromotionContext: what the engine needs to know about the booking and guest
- DiscountResult: a successful application
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Tuple


class DiscountType(Enum):
    PERCENTAGE = 'percentage'
    FIXED_AMOUNT = 'fixed_amount'


class PromotionType(Enum):
    GENERAL = 'general'
    FIRST_BOOKING = 'first_booking'
    SEASONAL = 'seasonal'
    FLASH_SALE = 'flash_sale'


class PromotionSource(Enum):
    ADMIN = 'admin'
    HOST = 'host'


def normalize_code(code: str) -> str:
    return (code or '').strip().upper()


@dataclass(frozen=True)
class Promotion:
    code: str
    discount_type: DiscountType
    discount_value: int
    id: str | None = None
    name: str = ''
    promotion_type: PromotionType = PromotionType.GENERAL
    source: PromotionSource = PromotionSource.ADMIN
    max_discount: int | None = None
    min_booking_value: int | None = None
    max_uses: int | None = None
    max_uses_per_user: int | None = None
    used_count: int = 0
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    property_types: FrozenSet[str] = frozenset()
    listing_ids: FrozenSet[str] = frozenset()
    user_ids: FrozenSet[str] = frozenset()
    membership_tiers: FrozenSet[str] = frozenset()
    stack_with_membership: bool = True
    stack_with_promotions: bool = False
    is_active: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'code', normalize_code(self.code))
        if not self.code:
            raise ValueError("Promotion code is required")
        if self.discount_value <= 0:
            raise ValueError("Discount value must be positive")
        if self.discount_type is DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        if self.valid_from and self.valid_until and self.valid_from >= self.valid_until:
            raise ValueError("valid_from must be before valid_until")

    @property
    def has_usage_cap(self) -> bool:
        return self.max_uses is not None and self.max_uses > 0

    @property
    def has_per_user_cap(self) -> bool:
        return self.max_uses_per_user is not None and self.max_uses_per_user > 0

    def is_within_window(self, now: datetime) -> bool:
        """Validity window is half-open: [valid_from, valid_until)"""
        if self.valid_from and now < self.valid_from:
            return False
        if self.valid_until and now >= self.valid_until:
            return False
        return True


@dataclass(frozen=True)
class AppliedDiscount:
    """A discount line on a booking (membership or promotion)"""
    kind: str                    # 'membership' or 'promotion'
    amount: int
    code: str | None = None
    discount_type: str | None = None
    rate: int | None = None
    stack_with_membership: bool = True
    stack_with_promotions: bool = False

    def to_dict(self) -> dict:
        data = {'type': self.kind.upper(), 'amount': self.amount}
        if self.code:
            data.update({
                'code': self.code,
                'discount_type': self.discount_type,
                'stack_with_membership': self.stack_with_membership,
                'stack_with_promotions': self.stack_with_promotions,
            })
        if self.rate is not None:
            data['rate'] = self.rate
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'AppliedDiscount':
        return cls(
            kind=str(data.get('type', 'promotion')).lower(),
            amount=int(data.get('amount', 0)),
            code=data.get('code'),
            discount_type=data.get('discount_type'),
            rate=data.get('rate'),
            stack_with_membership=data.get('stack_with_membership', True),
            stack_with_promotions=data.get('stack_with_promotions', False),
        )


@dataclass(frozen=True)
class PromotionContext:
    listing_id: str
    redeemer_key: str
    property_type: str = ''
    user_id: str | None = None
    membership_tier: str | None = None
    membership_discount: int = 0
    applied: Tuple[AppliedDiscount, ...] = ()
    user_redemption_count: int = 0
    prior_bookings_count: int = 0

    @property
    def applied_promotions(self) -> Tuple[AppliedDiscount, ...]:
        return tuple(entry for entry in self.applied if entry.kind == 'promotion')

    @property
    def already_discounted(self) -> int:
        """Membership discount plus promotions already on the booking"""
        return self.membership_discount + sum(entry.amount for entry in self.applied_promotions)


@dataclass(frozen=True)
class DiscountResult:
    promotion: Promotion
    amount: int
    raw_amount: int
    subtotal: int
    applied: AppliedDiscount = field(init=False)

    ok = True

    def __post_init__(self):
        object.__setattr__(self, 'applied', AppliedDiscount(
            kind='promotion',
            amount=self.amount,
            code=self.promotion.code,
            discount_type=self.promotion.discount_type.value,
            rate=self.promotion.discount_value
            if self.promotion.discount_type is DiscountType.PERCENTAGE else None,
            stack_with_membership=self.promotion.stack_with_membership,
            stack_with_promotions=self.promotion.stack_with_promotions,
        ))

    @property
    def capped(self) -> bool:
        return self.amount < self.raw_amount


@dataclass(frozen=True)
class Redemption:
    """One recorded use of a promotion, the unit the usage cap counts"""
    promotion_code: str
    redeemer_key: str
    booking_id: str
    amount: int = 0
    used_count: int = 0
    id: str | None = None

    ok = True
