"""
Promotion Engine

Decides whether a coupon applies to a priced booking and how much it takes
off. Pure: it never touches usage counters. Redemption (the atomic
increment-and-record step) is the repository's job, see
apps.promotions.repositories.

Eligibility runs fail-fast in a fixed order so the guest always gets the
most fundamental reason first:

    active -> validity window -> minimum booking value -> property type
    -> listing -> user -> membership tier -> first booking
    -> global usage cap -> per-user cap -> stacking
"""

from datetime import datetime
from decimal import Decimal

from shared.domain.results import ErrorCategory, Rejection
from apps.bookings.domain.pricing import PricedBooking, round_amount
from apps.promotions.domain.entities import (
    DiscountResult,
    DiscountType,
    Promotion,
    PromotionContext,
    PromotionType,
)

# Rejection reasons
NOT_FOUND = 'NOT_FOUND'
INACTIVE = 'INACTIVE'
NOT_STARTED = 'NOT_STARTED'
EXPIRED = 'EXPIRED'
BELOW_MINIMUM = 'BELOW_MINIMUM'
PROPERTY_TYPE_NOT_ELIGIBLE = 'PROPERTY_TYPE_NOT_ELIGIBLE'
LISTING_NOT_ELIGIBLE = 'LISTING_NOT_ELIGIBLE'
USER_NOT_ELIGIBLE = 'USER_NOT_ELIGIBLE'
TIER_NOT_ELIGIBLE = 'TIER_NOT_ELIGIBLE'
FIRST_BOOKING_ONLY = 'FIRST_BOOKING_ONLY'
USAGE_EXHAUSTED = 'USAGE_EXHAUSTED'
USER_LIMIT_REACHED = 'USER_LIMIT_REACHED'
ALREADY_APPLIED = 'ALREADY_APPLIED'
NOT_STACKABLE = 'NOT_STACKABLE'
MEMBERSHIP_NOT_STACKABLE = 'MEMBERSHIP_NOT_STACKABLE'
NO_DISCOUNT = 'NO_DISCOUNT'


def ineligible(reason: str, message: str, **details) -> Rejection:
    return Rejection(
        category=ErrorCategory.PROMOTION_INELIGIBLE,
        reason=reason,
        message=message,
        details=details,
    )


class PromotionEngine:

    def apply(
        self,
        promotion: Promotion | None,
        priced: PricedBooking,
        context: PromotionContext,
        now: datetime,
    ) -> DiscountResult | Rejection:
        if promotion is None:
            return ineligible(NOT_FOUND, "Promotion code does not exist.")

        rejection = self.check_eligibility(promotion, priced, context, now)
        if rejection:
            return rejection

        raw_amount = self.raw_discount(promotion, priced.subtotal)
        amount = self.capped_discount(promotion, priced.subtotal, context)
        if amount <= 0:
            return ineligible(NO_DISCOUNT, "Promotion does not reduce this booking.", code=promotion.code)

        return DiscountResult(
            promotion=promotion,
            amount=amount,
            raw_amount=raw_amount,
            subtotal=priced.subtotal,
        )

    def check_eligibility(
        self,
        promotion: Promotion,
        priced: PricedBooking,
        context: PromotionContext,
        now: datetime,
    ) -> Rejection | None:
        code = promotion.code

        if not promotion.is_active:
            return ineligible(INACTIVE, "Promotion is no longer active.", code=code)

        if not promotion.is_within_window(now):
            if promotion.valid_from and now < promotion.valid_from:
                return ineligible(NOT_STARTED, "Promotion is not valid yet.", code=code)
            return ineligible(EXPIRED, "Promotion has expired.", code=code)

        if promotion.min_booking_value and priced.subtotal < promotion.min_booking_value:
            return ineligible(
                BELOW_MINIMUM,
                f"Booking value must be at least {promotion.min_booking_value}.",
                code=code,
                min_booking_value=promotion.min_booking_value,
                subtotal=priced.subtotal,
            )

        if promotion.property_types and context.property_type not in promotion.property_types:
            return ineligible(PROPERTY_TYPE_NOT_ELIGIBLE, "Promotion does not apply to this property type.", code=code)

        if promotion.listing_ids and str(context.listing_id) not in promotion.listing_ids:
            return ineligible(LISTING_NOT_ELIGIBLE, "Promotion does not apply to this listing.", code=code)

        if promotion.user_ids and str(context.user_id or '') not in promotion.user_ids:
            return ineligible(USER_NOT_ELIGIBLE, "Promotion is not available for this account.", code=code)

        if promotion.membership_tiers and context.membership_tier not in promotion.membership_tiers:
            return ineligible(TIER_NOT_ELIGIBLE, "Promotion requires a higher membership tier.", code=code)

        if promotion.promotion_type is PromotionType.FIRST_BOOKING and context.prior_bookings_count > 0:
            return ineligible(FIRST_BOOKING_ONLY, "Promotion is only valid for a first booking.", code=code)

        if promotion.has_usage_cap and promotion.used_count >= promotion.max_uses:
            return ineligible(USAGE_EXHAUSTED, "Promotion usage limit reached.", code=code)

        if promotion.has_per_user_cap and context.user_redemption_count >= promotion.max_uses_per_user:
            return ineligible(USER_LIMIT_REACHED, "You have already used this promotion the maximum number of times.", code=code)

        return self.check_stacking(promotion, context)

    def check_stacking(self, promotion: Promotion, context: PromotionContext) -> Rejection | None:
        for existing in context.applied_promotions:
            if existing.code == promotion.code:
                return ineligible(ALREADY_APPLIED, "Promotion is already applied to this booking.", code=promotion.code)
            if not existing.stack_with_promotions:
                return ineligible(
                    NOT_STACKABLE,
                    "Another promotion is already applied. Remove it first.",
                    code=promotion.code,
                    applied_code=existing.code,
                )

        if context.membership_discount > 0 and not promotion.stack_with_membership:
            return ineligible(
                MEMBERSHIP_NOT_STACKABLE,
                "Promotion cannot be combined with the membership discount.",
                code=promotion.code,
            )
        return None

    @staticmethod
    def raw_discount(promotion: Promotion, subtotal: int) -> int:
        """Discount before max_discount and subtotal caps"""
        if promotion.discount_type is DiscountType.PERCENTAGE:
            return round_amount(Decimal(subtotal) * Decimal(promotion.discount_value) / Decimal(100))
        return promotion.discount_value

    def capped_discount(self, promotion: Promotion, subtotal: int, context: PromotionContext) -> int:
        amount = self.raw_discount(promotion, subtotal)
        if promotion.discount_type is DiscountType.PERCENTAGE and promotion.max_discount:
            amount = min(amount, promotion.max_discount)
        # never discount below zero, membership and earlier promotions come first
        room = max(subtotal - context.already_discounted, 0)
        return max(min(amount, room), 0)
