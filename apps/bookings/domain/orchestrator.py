"""
Booking Orchestrator

Composes availability, pricing and promotions into one decision.

State machine:
    DRAFT -> VALIDATED    AvailabilityChecker (fails: UNAVAILABLE, CAPACITY,
                          POLICY, PAST_DATE)
    VALIDATED -> PRICED   PricingCalculator (never fails for validated input)
    PRICED -> DISCOUNTED  PromotionEngine (pass-through without a code)
    DISCOUNTED -> ACCEPTED
                          CONFIRMED when the listing is instant-bookable,
                          PENDING otherwise (host confirms later)
    any -> REJECTED

ACCEPTED is terminal here. Cancellation and completion belong to the
booking lifecycle outside this engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List
from uuid import uuid4

from shared.domain.clock import Clock
from shared.domain.exceptions import BookingEngineError
from shared.domain.results import Rejection
from apps.bookings.domain.availability import AvailabilityChecker
from apps.bookings.domain.entities import (
    BlockedInterval,
    Booking,
    BookingRequest,
    BookingStatus,
    ExistingReservation,
    Listing,
)
from apps.bookings.domain.events import BookingAccepted
from apps.bookings.domain.pricing import PricedBooking, PricingCalculator
from apps.promotions.domain.engine import PromotionEngine
from apps.promotions.domain.entities import (
    AppliedDiscount,
    DiscountResult,
    Promotion,
    PromotionContext,
    normalize_code,
)


class BookingState(Enum):
    DRAFT = 'draft'
    VALIDATED = 'validated'
    PRICED = 'priced'
    DISCOUNTED = 'discounted'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'


@dataclass
class BookingDecision:
    state: BookingState = BookingState.DRAFT
    trail: List[BookingState] = field(default_factory=lambda: [BookingState.DRAFT])
    booking: Booking | None = None
    rejection: Rejection | None = None
    priced: PricedBooking | None = None
    discount: DiscountResult | None = None

    @property
    def accepted(self) -> bool:
        return self.state is BookingState.ACCEPTED

    def advance(self, state: BookingState):
        self.state = state
        self.trail.append(state)

    def reject(self, rejection: Rejection) -> 'BookingDecision':
        self.rejection = rejection
        self.advance(BookingState.REJECTED)
        return self


def generate_booking_code(clock: Clock) -> str:
    """Human-readable booking code: BK{date}{random}"""
    return f"BK{clock.now():%Y%m%d}{uuid4().hex[:6].upper()}"


class BookingOrchestrator:

    def __init__(
        self,
        availability: AvailabilityChecker | None = None,
        pricing: PricingCalculator | None = None,
        promotions: PromotionEngine | None = None,
    ):
        self.availability = availability or AvailabilityChecker()
        self.pricing = pricing or PricingCalculator()
        self.promotions = promotions or PromotionEngine()

    def process(
        self,
        request: BookingRequest,
        listing: Listing,
        reservations: Iterable[ExistingReservation],
        blocked: Iterable[BlockedInterval],
        clock: Clock,
        promotion: Promotion | None = None,
        context: PromotionContext | None = None,
    ) -> BookingDecision:
        if str(request.listing_id) != str(listing.id):
            raise BookingEngineError(
                f"Listing snapshot {listing.id} does not match request for {request.listing_id}"
            )

        decision = BookingDecision()

        # DRAFT -> VALIDATED
        result = self.availability.check(
            listing,
            request.dates,
            request.party,
            reservations,
            blocked,
            today=clock.today(),
        )
        if isinstance(result, Rejection):
            return decision.reject(result)
        decision.advance(BookingState.VALIDATED)

        # VALIDATED -> PRICED
        priced = self.pricing.price(listing, request.dates)
        decision.priced = priced
        decision.advance(BookingState.PRICED)

        # PRICED -> DISCOUNTED
        context = context or self.default_context(request, listing)
        applied: List[AppliedDiscount] = []
        if context.membership_discount > 0:
            applied.append(AppliedDiscount(
                kind='membership',
                amount=min(context.membership_discount, priced.subtotal),
            ))

        if request.promotion_code:
            if promotion is not None and promotion.code != normalize_code(request.promotion_code):
                promotion = None
            discount = self.promotions.apply(promotion, priced, context, clock.now())
            if isinstance(discount, Rejection):
                return decision.reject(discount)
            decision.discount = discount
            applied.append(discount.applied)

        priced = priced.with_discount(sum(entry.amount for entry in applied))
        decision.priced = priced
        decision.advance(BookingState.DISCOUNTED)

        # DISCOUNTED -> ACCEPTED
        status = BookingStatus.CONFIRMED if listing.instant_bookable else BookingStatus.PENDING
        booking = Booking(
            booking_code=generate_booking_code(clock),
            listing_id=str(listing.id),
            contact=request.contact,
            dates=request.dates,
            party=request.party,
            priced=priced,
            status=status,
            instant_book=listing.instant_bookable,
            applied_discounts=tuple(applied),
            special_requests=request.special_requests,
            accepted_at=clock.now(),
        )
        booking.add_event(BookingAccepted(
            aggregate_id=booking.id,
            booking_id=str(booking.id),
            booking_code=booking.booking_code,
            listing_id=booking.listing_id,
            status=status.value,
            dates=request.dates,
            total=priced.total,
            currency=priced.currency,
            contact_email=request.contact.email,
            contact_name=request.contact.name,
            user_id=request.contact.user_id,
            promotion_code=booking.promotion_code,
        ))
        decision.booking = booking
        decision.advance(BookingState.ACCEPTED)
        return decision

    @staticmethod
    def default_context(request: BookingRequest, listing: Listing) -> PromotionContext:
        return PromotionContext(
            listing_id=str(listing.id),
            redeemer_key=request.contact.redeemer_key,
            property_type=listing.property_type,
            user_id=request.contact.user_id,
        )
