"""Persistence for accepted bookings."""

from __future__ import annotations

import logging
from typing import List

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.db.models import Q  # type: ignore

from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    ContactIdentity,
    ExistingReservation,
    PartyComposition,
    normalize_phone,
)
from apps.bookings.domain.pricing import PricedBooking
from apps.promotions.domain.entities import AppliedDiscount
from shared.domain.value_objects import DateRange
from shared.infrastructure.locking import lock_queryset_if_possible

from .models import Booking as BookingModel

logger = logging.getLogger(__name__)


def active_statuses() -> List[str]:
    engine = getattr(settings, "BOOKING_ENGINE", {})
    return list(engine.get("ACTIVE_RESERVATION_STATUSES", BookingModel.ACTIVE_STATUSES))


class DjangoBookingRepository:

    def active_reservations(self, listing_id, dates: DateRange | None = None) -> List[ExistingReservation]:
        """Reservations that still hold the calendar, optionally only those touching `dates`"""
        queryset = BookingModel.objects.filter(listing_id=listing_id, status__in=active_statuses())
        if dates is not None:
            queryset = queryset.filter(check_in__lt=dates.end, check_out__gt=dates.start)
        rows = queryset.only("id", "check_in", "check_out", "status").order_by("check_in")
        return [row.to_reservation() for row in rows]

    def count_prior_bookings(self, contact: ContactIdentity, exclude=None) -> int:
        """Bookings the same guest already holds, used by first-booking promotions"""
        if contact.user_id:
            lookup = Q(guest_id=contact.user_id)
        elif contact.email.strip():
            lookup = Q(contact_email__iexact=contact.email.strip())
        else:
            lookup = Q(contact_phone=normalize_phone(contact.phone))
        queryset = BookingModel.objects.filter(lookup, status__in=active_statuses())
        if exclude is not None:
            queryset = queryset.exclude(pk=exclude)
        return queryset.count()

    def get(self, booking_id, *, lock: bool = False) -> Booking | None:
        try:
            queryset = BookingModel.objects.filter(pk=booking_id)
            if lock:
                queryset = lock_queryset_if_possible(queryset)
            model = queryset.first()
        except ValidationError:
            model = None
        return self._to_domain(model) if model else None

    def add(self, booking: Booking) -> BookingModel:
        contact = booking.contact
        priced = booking.priced
        model = BookingModel(
            id=booking.id,
            booking_code=booking.booking_code,
            listing_id=booking.listing_id,
            guest_id=contact.user_id or None,
            guest_type=(
                BookingModel.GuestType.REGISTERED if contact.is_registered else BookingModel.GuestType.WALK_IN
            ),
            contact_name=contact.name,
            contact_email=contact.email,
            contact_phone=normalize_phone(contact.phone),
            check_in=booking.dates.start,
            check_out=booking.dates.end,
            adults=booking.party.adults,
            children=booking.party.children,
            infants=booking.party.infants,
            pets=booking.party.pets,
            status=booking.status.value,
            instant_book=booking.instant_book,
            nightly_rate=priced.base_price_total // priced.nights,
            total_nights=priced.nights,
            base_price_total=priced.base_price_total,
            cleaning_fee=priced.cleaning_fee,
            service_fee=priced.service_fee,
            currency=priced.currency,
            special_requests=booking.special_requests,
        )
        self._copy_discounts(booking, model)
        model.save(force_insert=True)
        logger.info(f"Saved booking {booking.booking_code} ({booking.status.value}) for listing {booking.listing_id}")
        return model

    def update_discounts(self, booking: Booking) -> None:
        model = BookingModel.objects.get(pk=booking.id)
        self._copy_discounts(booking, model)
        model.save(update_fields=[
            "membership_discount",
            "promotion_discount",
            "discount_amount",
            "total_price",
            "promotion_code",
            "applied_promotions",
            "updated_at",
        ])

    @staticmethod
    def _copy_discounts(booking: Booking, model: BookingModel) -> None:
        model.membership_discount = booking.membership_discount
        model.promotion_discount = booking.promotion_discount
        model.discount_amount = booking.priced.discount
        model.total_price = booking.priced.total
        model.promotion_code = booking.promotion_code or ""
        model.applied_promotions = [entry.to_dict() for entry in booking.applied_discounts]

    @staticmethod
    def _to_domain(model: BookingModel) -> Booking:
        return Booking(
            id=model.pk,
            booking_code=model.booking_code,
            listing_id=str(model.listing_id),
            contact=ContactIdentity(
                user_id=str(model.guest_id) if model.guest_id else None,
                name=model.contact_name,
                email=model.contact_email,
                phone=model.contact_phone,
            ),
            dates=model.dates,
            party=PartyComposition(
                adults=model.adults,
                children=model.children,
                infants=model.infants,
                pets=model.pets,
            ),
            priced=PricedBooking(
                nights=model.total_nights,
                base_price_total=int(model.base_price_total),
                cleaning_fee=int(model.cleaning_fee),
                service_fee=int(model.service_fee),
                discount=int(model.discount_amount),
                currency=model.currency,
            ),
            status=BookingStatus(model.status),
            instant_book=model.instant_book,
            applied_discounts=tuple(AppliedDiscount.from_dict(entry) for entry in model.applied_promotions or []),
            special_requests=model.special_requests,
            accepted_at=model.created_at,
        )
