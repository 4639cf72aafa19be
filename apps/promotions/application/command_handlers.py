"""
Promotion Command Handlers

Commands:
- ApplyPromotionCommand: add a coupon to a PENDING booking
- ReleasePromotionCommand: remove a coupon from a PENDING booking and free
  its usage slot

Coupons entered with the booking request itself are handled by
CreateBookingHandler; these cover changes before the host confirms.
"""

from dataclasses import dataclass
from uuid import UUID
import logging

from django.db import DatabaseError  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.clock import Clock, SystemClock
from shared.domain.results import ErrorCategory, Rejection
from apps.bookings.domain.entities import ContactIdentity, Listing
from apps.promotions.domain.engine import PromotionEngine
from apps.promotions.domain.entities import (
    AppliedDiscount,
    DiscountResult,
    PromotionContext,
    normalize_code,
)
from apps.promotions.domain.events import PromotionRedeemed, PromotionReleased
from apps.promotions.repositories import redemption_failed

logger = logging.getLogger(__name__)

BOOKING_NOT_FOUND = 'BOOKING_NOT_FOUND'
BOOKING_NOT_EDITABLE = 'BOOKING_NOT_EDITABLE'


def build_promotion_context(
    booking_repo,
    promotion_repo,
    listing: Listing,
    contact: ContactIdentity,
    code: str | None,
    membership_tier: str | None = None,
    membership_discount: int = 0,
    applied=(),
    exclude_booking=None,
) -> PromotionContext:
    """Gather the per-guest facts the engine needs to judge a code"""
    redeemer_key = contact.redeemer_key
    return PromotionContext(
        listing_id=str(listing.id),
        redeemer_key=redeemer_key,
        property_type=listing.property_type,
        user_id=contact.user_id,
        membership_tier=membership_tier,
        membership_discount=membership_discount,
        applied=tuple(applied),
        user_redemption_count=promotion_repo.count_redemptions(code, redeemer_key) if code else 0,
        prior_bookings_count=booking_repo.count_prior_bookings(contact, exclude=exclude_booking),
    )


def booking_not_found(booking_id) -> Rejection:
    return Rejection(
        category=ErrorCategory.VALIDATION,
        reason=BOOKING_NOT_FOUND,
        message="Booking not found.",
        details={'booking_id': str(booking_id)},
    )


def booking_not_editable(booking) -> Rejection:
    return Rejection(
        category=ErrorCategory.VALIDATION,
        reason=BOOKING_NOT_EDITABLE,
        message="Promotions can only be changed while the booking awaits confirmation.",
        details={'booking_id': str(booking.id), 'status': booking.status.value},
    )


# ===== Commands =====

@dataclass
class ApplyPromotionCommand:
    booking_id: UUID
    code: str
    membership_tier: str | None = None


@dataclass
class ReleasePromotionCommand:
    booking_id: UUID
    code: str


# ===== Command Handlers =====

class ApplyPromotionHandler:
    """
    Apply a coupon to an existing PENDING booking

    The booking row is locked, the engine judges the code against the
    pre-discount subtotal, the redemption is recorded atomically and the
    booking is repriced, all in one transaction.
    """

    def __init__(
        self,
        booking_repo,
        promotion_repo,
        listing_repo,
        engine: PromotionEngine | None = None,
        clock: Clock | None = None,
        uow_factory=DjangoUnitOfWork,
    ):
        self.booking_repo = booking_repo
        self.promotion_repo = promotion_repo
        self.listing_repo = listing_repo
        self.engine = engine or PromotionEngine()
        self.clock = clock or SystemClock()
        self.uow_factory = uow_factory

    def handle(self, command: ApplyPromotionCommand) -> DiscountResult | Rejection:
        code = normalize_code(command.code)
        logger.info(f"Applying promotion {code} to booking {command.booking_id}")

        try:
            with self.uow_factory() as uow:
                booking = self.booking_repo.get(command.booking_id, lock=True)
                if booking is None:
                    return booking_not_found(command.booking_id)
                if not booking.is_editable:
                    return booking_not_editable(booking)

                listing = self.listing_repo.get(booking.listing_id)
                promotion = self.promotion_repo.get_by_code(code)
                context = build_promotion_context(
                    self.booking_repo,
                    self.promotion_repo,
                    listing,
                    booking.contact,
                    code,
                    membership_tier=command.membership_tier,
                    membership_discount=booking.membership_discount,
                    applied=booking.applied_discounts,
                    exclude_booking=booking.id,
                )

                result = self.engine.apply(promotion, booking.priced.with_discount(0), context, self.clock.now())
                if isinstance(result, Rejection):
                    logger.info(f"Promotion {code} rejected for booking {booking.booking_code}: {result.reason}")
                    return result

                redemption = self.promotion_repo.redeem(
                    promotion,
                    context.redeemer_key,
                    booking.id,
                    amount=result.amount,
                    user_id=booking.contact.user_id,
                )
                if isinstance(redemption, Rejection):
                    logger.info(f"Redemption of {code} refused for booking {booking.booking_code}: {redemption.reason}")
                    return redemption

                booking.add_discount(result.applied)
                self.booking_repo.update_discounts(booking)
                uow.add_event(PromotionRedeemed(
                    aggregate_id=booking.id,
                    promotion_code=code,
                    redeemer_key=context.redeemer_key,
                    booking_id=str(booking.id),
                    amount=result.amount,
                ))
        except DatabaseError as e:
            logger.error(f"Failed to apply promotion {code} to booking {command.booking_id}: {e}", exc_info=True)
            return redemption_failed(code)

        logger.info(f"Promotion {code} applied to booking {booking.booking_code}: -{result.amount}")
        return result


class ReleasePromotionHandler:
    """Remove a coupon from a PENDING booking and give the usage slot back"""

    def __init__(self, booking_repo, promotion_repo, uow_factory=DjangoUnitOfWork):
        self.booking_repo = booking_repo
        self.promotion_repo = promotion_repo
        self.uow_factory = uow_factory

    def handle(self, command: ReleasePromotionCommand) -> AppliedDiscount | Rejection | None:
        """Returns the removed discount line, or None when the code was not on the booking"""
        code = normalize_code(command.code)
        logger.info(f"Releasing promotion {code} from booking {command.booking_id}")

        try:
            with self.uow_factory() as uow:
                booking = self.booking_repo.get(command.booking_id, lock=True)
                if booking is None:
                    return booking_not_found(command.booking_id)
                if not booking.is_editable:
                    return booking_not_editable(booking)

                removed = booking.remove_promotion(code)
                if removed is None:
                    logger.info(f"Promotion {code} not applied to booking {booking.booking_code}, nothing to release")
                    return None

                redeemer_key = booking.contact.redeemer_key
                if not self.promotion_repo.release(code, redeemer_key, booking.id):
                    logger.warning(f"No active redemption of {code} recorded for booking {booking.booking_code}")
                self.booking_repo.update_discounts(booking)
                uow.add_event(PromotionReleased(
                    aggregate_id=booking.id,
                    promotion_code=code,
                    redeemer_key=redeemer_key,
                    booking_id=str(booking.id),
                ))
        except DatabaseError as e:
            logger.error(f"Failed to release promotion {code} from booking {command.booking_id}: {e}", exc_info=True)
            return redemption_failed(code)

        return removed
