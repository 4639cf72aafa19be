"""
Availability Checker

This is the CRITICAL check for preventing double bookings. It decides
whether a candidate stay is bookable against the listing's existing
reservations and host-blocked periods.

Cheap preconditions run first (inactive listing, past date, capacity,
pets); overlap scans run last. Reservation conflicts are reported before
blocked-date conflicts because "someone booked these dates" is the more
actionable message.

The checker is a pure function of its inputs and safe to retry. It is
run twice per booking: once for the quote and once more under the
listing lock right before the reservation is written.
"""

from datetime import date
from typing import Iterable

from shared.domain.results import Available, AvailabilityResult, ErrorCategory, Rejection
from shared.domain.value_objects import DateRange
from apps.bookings.domain.entities import (
    BlockedInterval,
    ExistingReservation,
    Listing,
    PartyComposition,
)

# Rejection reasons
UNAVAILABLE = 'UNAVAILABLE'
CAPACITY = 'CAPACITY'
POLICY = 'POLICY'
PAST_DATE = 'PAST_DATE'


class AvailabilityChecker:

    def check(
        self,
        listing: Listing,
        dates: DateRange,
        party: PartyComposition,
        reservations: Iterable[ExistingReservation],
        blocked: Iterable[BlockedInterval],
        today: date,
    ) -> AvailabilityResult:
        rejection = self._check_preconditions(listing, dates, party, today)
        if rejection:
            return rejection

        conflict = self.find_reservation_conflict(dates, reservations)
        if conflict:
            return Rejection(
                category=ErrorCategory.CONFLICT,
                reason=UNAVAILABLE,
                message=f"Dates {dates} overlap an existing booking ({conflict.dates}).",
                conflicting_range=conflict.dates,
                details={'source': 'reservation'},
            )

        block = self.find_blocked_conflict(dates, blocked)
        if block:
            return Rejection(
                category=ErrorCategory.CONFLICT,
                reason=UNAVAILABLE,
                message=f"Dates {dates} are blocked by the host ({block.dates}).",
                conflicting_range=block.dates,
                details={'source': 'blocked', 'reason': block.reason},
            )

        return Available(dates=dates)

    def _check_preconditions(self, listing, dates, party, today) -> Rejection | None:
        if not listing.is_active:
            return Rejection(
                category=ErrorCategory.CONFLICT,
                reason=POLICY,
                message=f"Listing {listing.id} is not open for booking.",
            )

        if dates.start < today:
            return Rejection(
                category=ErrorCategory.VALIDATION,
                reason=PAST_DATE,
                message="Check-in date cannot be in the past.",
            )

        if party.total_guests > listing.max_guests:
            return Rejection(
                category=ErrorCategory.CONFLICT,
                reason=CAPACITY,
                message=f"Maximum {listing.max_guests} guests allowed.",
                details={'requested': party.total_guests, 'max_guests': listing.max_guests},
            )

        if party.pets > 0 and not listing.allows_pets:
            return Rejection(
                category=ErrorCategory.CONFLICT,
                reason=POLICY,
                message="Pets are not allowed at this property.",
            )

        return None

    @staticmethod
    def find_reservation_conflict(
        dates: DateRange,
        reservations: Iterable[ExistingReservation],
    ) -> ExistingReservation | None:
        """First active reservation overlapping `dates`"""
        for reservation in reservations:
            if reservation.is_active and reservation.dates.overlaps_with(dates):
                return reservation
        return None

    @staticmethod
    def find_blocked_conflict(
        dates: DateRange,
        blocked: Iterable[BlockedInterval],
    ) -> BlockedInterval | None:
        for interval in blocked:
            if interval.dates.overlaps_with(dates):
                return interval
        return None


def check_availability(listing, dates, party, reservations, blocked, today) -> AvailabilityResult:
    """Functional shortcut for AvailabilityChecker().check(...)"""
    return AvailabilityChecker().check(listing, dates, party, reservations, blocked, today)
