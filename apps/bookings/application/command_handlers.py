"""
Booking Command Handlers

These are the use cases for the booking domain.
They orchestrate domain operations within transactions.

Commands:
- QuoteBookingCommand: price a stay without committing anything
- CreateBookingCommand: accept a booking (PENDING or CONFIRMED)
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
import logging

from django.conf import settings  # type: ignore
from django.db import DatabaseError  # type: ignore

from shared.application.uow import DjangoUnitOfWork
from shared.domain.clock import Clock, SystemClock
from shared.domain.results import ErrorCategory, Rejection
from shared.domain.value_objects import DateRange
from apps.bookings.domain.entities import BookingRequest, ContactIdentity, PartyComposition
from apps.bookings.domain.orchestrator import BookingDecision, BookingOrchestrator
from apps.bookings.domain.pricing import DEFAULT_SERVICE_FEE_RATE, PricingCalculator
from apps.promotions.application.command_handlers import build_promotion_context
from apps.promotions.domain.events import PromotionRedeemed

logger = logging.getLogger(__name__)

INVALID_REQUEST = 'INVALID_REQUEST'
COMMIT_FAILED = 'COMMIT_FAILED'


def default_orchestrator() -> BookingOrchestrator:
    """Orchestrator wired with the configured service fee rate"""
    engine = getattr(settings, 'BOOKING_ENGINE', {})
    rate = Decimal(str(engine.get('SERVICE_FEE_RATE', DEFAULT_SERVICE_FEE_RATE)))
    return BookingOrchestrator(pricing=PricingCalculator(rate))


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    Either user_id (registered guest) or contact_name plus email/phone
    (walk-in guest) identifies who the booking is for.
    """
    listing_id: str
    check_in: date
    check_out: date
    adults: int = 1
    children: int = 0
    infants: int = 0
    pets: int = 0
    user_id: str | None = None
    contact_name: str = ''
    contact_email: str = ''
    contact_phone: str = ''
    promotion_code: str | None = None
    special_requests: str = ''
    membership_tier: str | None = None
    membership_discount: int = 0


QuoteBookingCommand = CreateBookingCommand


def build_request(command: CreateBookingCommand) -> BookingRequest | Rejection:
    """Turn raw command fields into a validated BookingRequest"""
    try:
        return BookingRequest(
            listing_id=str(command.listing_id),
            dates=DateRange(command.check_in, command.check_out),
            party=PartyComposition(
                adults=command.adults,
                children=command.children,
                infants=command.infants,
                pets=command.pets,
            ),
            contact=ContactIdentity(
                user_id=str(command.user_id) if command.user_id else None,
                name=command.contact_name or '',
                email=command.contact_email or '',
                phone=command.contact_phone or '',
            ),
            promotion_code=command.promotion_code or None,
            special_requests=command.special_requests or '',
        )
    except (TypeError, ValueError) as e:
        return Rejection(category=ErrorCategory.VALIDATION, reason=INVALID_REQUEST, message=str(e))


def commit_failed() -> Rejection:
    return Rejection(
        category=ErrorCategory.INTERNAL,
        reason=COMMIT_FAILED,
        message="The booking could not be saved right now. Please try again.",
    )


# ===== Command Handlers =====

class _BookingHandler:

    def __init__(
        self,
        listing_repo,
        booking_repo,
        promotion_repo,
        orchestrator: BookingOrchestrator | None = None,
        clock: Clock | None = None,
        uow_factory=DjangoUnitOfWork,
    ):
        self.listing_repo = listing_repo
        self.booking_repo = booking_repo
        self.promotion_repo = promotion_repo
        self.orchestrator = orchestrator or default_orchestrator()
        self.clock = clock or SystemClock()
        self.uow_factory = uow_factory

    def _decide(self, request: BookingRequest, command: CreateBookingCommand, *, lock: bool):
        """Load fresh state for the listing and run the orchestrator over it"""
        listing = self.listing_repo.get(request.listing_id, lock=lock)
        reservations = self.booking_repo.active_reservations(listing.id, request.dates)
        blocked = self.listing_repo.blocked_intervals(listing.id, request.dates)

        promotion = None
        if request.promotion_code:
            promotion = self.promotion_repo.get_by_code(request.promotion_code)
        context = build_promotion_context(
            self.booking_repo,
            self.promotion_repo,
            listing,
            request.contact,
            request.promotion_code,
            membership_tier=command.membership_tier,
            membership_discount=max(int(command.membership_discount or 0), 0),
        )

        decision = self.orchestrator.process(
            request,
            listing,
            reservations,
            blocked,
            self.clock,
            promotion=promotion,
            context=context,
        )
        return decision, context


class QuoteBookingHandler(_BookingHandler):
    """Price a stay with the same rules as CreateBookingHandler, nothing is stored"""

    def handle(self, command: QuoteBookingCommand) -> BookingDecision:
        request = build_request(command)
        if isinstance(request, Rejection):
            return BookingDecision().reject(request)
        decision, _ = self._decide(request, command, lock=False)
        return decision


class CreateBookingHandler(_BookingHandler):
    """
    Handler for CreateBooking command

    Double booking prevention:
    1. Start database transaction (atomic)
    2. Lock the listing row with SELECT FOR UPDATE
    3. Reload reservations and blocked dates under the lock
    4. Run the orchestrator (availability -> pricing -> promotion)
    5. Redeem the promotion (conditional increment, unique redemption row)
    6. Save the booking
    7. Commit, then publish BookingAccepted / PromotionRedeemed
    """

    def handle(self, command: CreateBookingCommand) -> BookingDecision:
        logger.info(
            f"Creating booking for listing {command.listing_id}, "
            f"dates {command.check_in} - {command.check_out}"
        )

        request = build_request(command)
        if isinstance(request, Rejection):
            logger.info(f"Booking request rejected: {request.message}")
            return BookingDecision().reject(request)

        try:
            with self.uow_factory() as uow:
                decision, context = self._decide(request, command, lock=True)
                if not decision.accepted:
                    logger.info(
                        f"Booking for listing {request.listing_id} rejected: "
                        f"{decision.rejection.reason}"
                    )
                    return decision

                booking = decision.booking
                if decision.discount is not None:
                    redemption = self.promotion_repo.redeem(
                        decision.discount.promotion,
                        context.redeemer_key,
                        booking.id,
                        amount=decision.discount.amount,
                        user_id=request.contact.user_id,
                    )
                    if isinstance(redemption, Rejection):
                        logger.info(
                            f"Promotion {decision.discount.promotion.code} lost at redemption: "
                            f"{redemption.reason}"
                        )
                        decision.booking = None
                        return decision.reject(redemption)
                    uow.add_event(PromotionRedeemed(
                        aggregate_id=booking.id,
                        promotion_code=redemption.promotion_code,
                        redeemer_key=redemption.redeemer_key,
                        booking_id=str(booking.id),
                        amount=redemption.amount,
                    ))

                self.booking_repo.add(booking)
                uow.collect_events(booking)
        except DatabaseError as e:
            logger.error(f"Failed to commit booking for listing {command.listing_id}: {e}", exc_info=True)
            return BookingDecision().reject(commit_failed())

        logger.info(
            f"Booking {booking.booking_code} accepted as {booking.status.value}, "
            f"total {booking.priced.total} {booking.priced.currency}"
        )
        return decision
