"""Integration tests for the booking and promotion command handlers."""

from __future__ import annotations

from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from apps.bookings.application.command_handlers import (
    COMMIT_FAILED,
    INVALID_REQUEST,
    CreateBookingCommand,
    CreateBookingHandler,
    QuoteBookingHandler,
)
from apps.bookings.domain.availability import UNAVAILABLE
from apps.bookings.domain.events import BookingAccepted
from apps.bookings.models import Booking
from apps.bookings.repositories import DjangoBookingRepository
from apps.listings.models import BlockedPeriod, Listing
from apps.listings.repositories import DjangoListingRepository
from apps.promotions.application.command_handlers import (
    BOOKING_NOT_EDITABLE,
    BOOKING_NOT_FOUND,
    ApplyPromotionCommand,
    ApplyPromotionHandler,
    ReleasePromotionCommand,
    ReleasePromotionHandler,
)
from apps.promotions.domain import engine as rules
from apps.promotions.domain.events import PromotionRedeemed
from apps.promotions.models import Promotion, PromotionRedemption
from apps.promotions.repositories import REDEMPTION_FAILED, DjangoPromotionRepository
from shared.application.message_bus import MessageBus
from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import ListingNotFound
from shared.domain.results import ErrorCategory


class BookingHandlerTestCase(TestCase):

    def setUp(self) -> None:
        self.user = get_user_model().objects.create_user(username="lan", email="lan@example.com", password="x")
        self.listing = Listing.objects.create(
            title="Riverside homestay",
            status=Listing.Status.ACTIVE,
            property_type=Listing.PropertyType.HOMESTAY,
            base_price=1_000_000,
            cleaning_fee=200_000,
            service_fee=150_000,
            max_guests=4,
        )
        self.check_in = timezone.localdate() + timedelta(days=10)
        self.bus = MessageBus()
        self.published = []
        self.bus.subscribe(BookingAccepted, self.published.append)
        self.bus.subscribe(PromotionRedeemed, self.published.append)

    def repos(self) -> dict:
        return {
            "listing_repo": DjangoListingRepository(),
            "booking_repo": DjangoBookingRepository(),
            "promotion_repo": DjangoPromotionRepository(),
        }

    def uow(self) -> DjangoUnitOfWork:
        return DjangoUnitOfWork(self.bus)

    def command(self, nights: int = 3, offset: int = 0, **overrides) -> CreateBookingCommand:
        check_in = self.check_in + timedelta(days=offset)
        values = {
            "listing_id": str(self.listing.pk),
            "check_in": check_in,
            "check_out": check_in + timedelta(days=nights),
            "adults": 2,
            "user_id": str(self.user.pk),
        }
        values.update(overrides)
        return CreateBookingCommand(**values)

    def create(self, **overrides):
        handler = CreateBookingHandler(**self.repos(), uow_factory=self.uow)
        with self.captureOnCommitCallbacks(execute=True):
            return handler.handle(self.command(**overrides))

    def spring_promotion(self, **overrides) -> Promotion:
        values = {
            "code": "SPRING15",
            "discount_type": Promotion.DiscountTypeChoices.PERCENTAGE,
            "discount_value": 15,
            "max_discount": 300_000,
        }
        values.update(overrides)
        return Promotion.objects.create(**values)


class CreateBookingHandlerTests(BookingHandlerTestCase):

    def test_booking_is_stored_and_announced(self) -> None:
        decision = self.create()

        self.assertTrue(decision.accepted)
        booking = Booking.objects.get(pk=decision.booking.id)
        self.assertEqual(booking.status, Booking.Status.PENDING)
        self.assertEqual(booking.total_price, 3_350_000)
        self.assertEqual(booking.nightly_rate, 1_000_000)
        self.assertEqual(booking.guest_type, Booking.GuestType.REGISTERED)
        self.assertEqual([type(event) for event in self.published], [BookingAccepted])

    def test_overlap_is_rejected_with_conflicting_range(self) -> None:
        first = self.create()

        second = self.create(offset=2)

        self.assertEqual(second.rejection.category, ErrorCategory.CONFLICT)
        self.assertEqual(second.rejection.reason, UNAVAILABLE)
        self.assertEqual(second.rejection.conflicting_range, first.booking.dates)
        self.assertEqual(Booking.objects.count(), 1)

    def test_cancelled_booking_frees_dates(self) -> None:
        first = self.create()
        Booking.objects.filter(pk=first.booking.id).update(status=Booking.Status.CANCELLED)

        self.assertTrue(self.create(offset=1).accepted)

    def test_blocked_period(self) -> None:
        BlockedPeriod.objects.create(
            listing=self.listing,
            start_date=self.check_in + timedelta(days=1),
            end_date=self.check_in + timedelta(days=2),
            reason="Family visit",
        )

        decision = self.create()

        self.assertEqual(decision.rejection.reason, UNAVAILABLE)
        self.assertEqual(decision.rejection.details["source"], "blocked")

    def test_walk_in_guest(self) -> None:
        decision = self.create(user_id=None, contact_name="Minh", contact_phone="+84 90 123 4567")

        booking = Booking.objects.get(pk=decision.booking.id)
        self.assertEqual(booking.guest_type, Booking.GuestType.WALK_IN)
        self.assertIsNone(booking.guest_id)
        self.assertEqual(booking.contact_phone, "84901234567")

    def test_walk_in_without_contact_is_invalid(self) -> None:
        decision = self.create(user_id=None, contact_name="Minh")

        self.assertEqual(decision.rejection.reason, INVALID_REQUEST)
        self.assertEqual(decision.rejection.category, ErrorCategory.VALIDATION)

    def test_unknown_listing_raises(self) -> None:
        with self.assertRaises(ListingNotFound):
            self.create(listing_id="6b1c2d3e-0000-4000-8000-000000000000")

    def test_promotion_is_redeemed_with_booking(self) -> None:
        promotion = self.spring_promotion(max_uses=1)

        decision = self.create(promotion_code="spring15")

        booking = Booking.objects.get(pk=decision.booking.id)
        self.assertEqual(booking.total_price, 3_050_000)
        self.assertEqual(booking.promotion_code, "SPRING15")
        self.assertEqual(booking.applied_promotions[0]["amount"], 300_000)
        promotion.refresh_from_db()
        self.assertEqual(promotion.used_count, 1)
        self.assertEqual(
            [type(event) for event in self.published],
            [PromotionRedeemed, BookingAccepted],
        )

    def test_exhausted_promotion_rejects_whole_booking(self) -> None:
        self.spring_promotion(max_uses=1, used_count=1)

        decision = self.create(promotion_code="SPRING15")

        self.assertEqual(decision.rejection.reason, rules.USAGE_EXHAUSTED)
        self.assertFalse(Booking.objects.exists())

    def test_first_booking_promotion_counts_prior_stays(self) -> None:
        self.spring_promotion(promotion_type=Promotion.PromotionTypeChoices.FIRST_BOOKING)
        self.create()

        decision = self.create(offset=5, promotion_code="SPRING15")

        self.assertEqual(decision.rejection.reason, rules.FIRST_BOOKING_ONLY)

    def test_first_booking_promotion_matches_walk_in_phone_in_any_format(self) -> None:
        self.spring_promotion(promotion_type=Promotion.PromotionTypeChoices.FIRST_BOOKING)
        walk_in = {"user_id": None, "contact_name": "Minh", "promotion_code": "SPRING15"}
        first = self.create(contact_phone="0912 345 678", **walk_in)

        second = self.create(offset=5, contact_phone="0912-345-678", **walk_in)

        self.assertTrue(first.accepted)
        self.assertEqual(second.rejection.reason, rules.FIRST_BOOKING_ONLY)
        self.assertEqual(Booking.objects.count(), 1)

    def test_database_failure_is_retryable(self) -> None:
        class BrokenBookingRepository(DjangoBookingRepository):
            def add(self, booking):
                raise DatabaseError("disk full")

        handler = CreateBookingHandler(
            DjangoListingRepository(),
            BrokenBookingRepository(),
            DjangoPromotionRepository(),
            uow_factory=self.uow,
        )

        decision = handler.handle(self.command())

        self.assertEqual(decision.rejection.reason, COMMIT_FAILED)
        self.assertTrue(decision.rejection.retryable)
        self.assertFalse(Booking.objects.exists())

    def test_quote_stores_nothing(self) -> None:
        decision = QuoteBookingHandler(**self.repos()).handle(self.command())

        self.assertTrue(decision.accepted)
        self.assertEqual(decision.booking.priced.total, 3_350_000)
        self.assertFalse(Booking.objects.exists())


class PromotionHandlerTests(BookingHandlerTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.booking_id = self.create().booking.id

    def apply(self, code: str = "SPRING15"):
        handler = ApplyPromotionHandler(
            DjangoBookingRepository(),
            DjangoPromotionRepository(),
            DjangoListingRepository(),
            uow_factory=self.uow,
        )
        return handler.handle(ApplyPromotionCommand(booking_id=self.booking_id, code=code))

    def release(self, code: str = "SPRING15"):
        handler = ReleasePromotionHandler(DjangoBookingRepository(), DjangoPromotionRepository(), uow_factory=self.uow)
        return handler.handle(ReleasePromotionCommand(booking_id=self.booking_id, code=code))

    def test_apply_reprices_pending_booking(self) -> None:
        self.spring_promotion()

        result = self.apply("spring15")

        self.assertTrue(result.ok)
        booking = Booking.objects.get(pk=self.booking_id)
        self.assertEqual(booking.promotion_discount, 300_000)
        self.assertEqual(booking.total_price, 3_050_000)
        self.assertTrue(PromotionRedemption.objects.filter(booking_id=self.booking_id).exists())

    def test_apply_twice(self) -> None:
        self.spring_promotion()
        self.apply()

        again = self.apply()

        self.assertEqual(again.reason, rules.ALREADY_APPLIED)
        self.assertEqual(Promotion.objects.get(code="SPRING15").used_count, 1)

    def test_unknown_code(self) -> None:
        self.assertEqual(self.apply("NOPE").reason, rules.NOT_FOUND)

    def test_confirmed_booking_is_locked(self) -> None:
        self.spring_promotion()
        Booking.objects.filter(pk=self.booking_id).update(status=Booking.Status.CONFIRMED)

        result = self.apply()

        self.assertEqual(result.reason, BOOKING_NOT_EDITABLE)

    def test_unknown_booking(self) -> None:
        self.booking_id = "0d7e0b8a-0000-4000-8000-000000000000"

        self.assertEqual(self.apply().reason, BOOKING_NOT_FOUND)

    def test_release_restores_price_and_slot(self) -> None:
        self.spring_promotion(max_uses=1)
        self.apply()

        removed = self.release("spring15")

        self.assertEqual(removed.amount, 300_000)
        booking = Booking.objects.get(pk=self.booking_id)
        self.assertEqual(booking.total_price, 3_350_000)
        self.assertEqual(booking.promotion_code, "")
        self.assertEqual(Promotion.objects.get(code="SPRING15").used_count, 0)

    def test_release_code_not_on_booking(self) -> None:
        self.assertIsNone(self.release("SPRING15"))

    def test_release_database_failure_is_retryable(self) -> None:
        class BrokenPromotionRepository(DjangoPromotionRepository):
            def release(self, code, redeemer_key, booking_id):
                raise DatabaseError("connection lost")

        self.spring_promotion()
        self.apply()
        handler = ReleasePromotionHandler(DjangoBookingRepository(), BrokenPromotionRepository(), uow_factory=self.uow)

        result = handler.handle(ReleasePromotionCommand(booking_id=self.booking_id, code="SPRING15"))

        self.assertEqual(result.reason, REDEMPTION_FAILED)
        self.assertTrue(result.retryable)
        self.assertEqual(Booking.objects.get(pk=self.booking_id).total_price, 3_050_000)
        self.assertEqual(Promotion.objects.get(code="SPRING15").used_count, 1)
