"""
Booking Domain Entities

- BookingStatus: canonical lifecycle states plus the closed alias table
- PartyComposition / ContactIdentity / BookingRequest: validated input
- Listing / ExistingReservation / BlockedInterval: read-only snapshots
- Booking: the accepted, priced, conflict-free booking record
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Tuple

from shared.domain.base import Aggregate
from shared.domain.exceptions import InvalidStatus
from shared.domain.value_objects import DateRange


class BookingStatus(Enum):
    """
    Canonical booking statuses

    This engine only ever creates PENDING (host must confirm) or CONFIRMED
    (instant book). Later transitions belong to the booking lifecycle.
    """
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    EXPIRED = 'expired'


# Every status string the platform has ever stored, mapped onto the
# canonical set. Unknown strings are rejected instead of guessed.
BOOKING_STATUS_ALIASES = {
    'pending': BookingStatus.PENDING,
    'reviewing': BookingStatus.PENDING,
    'awaiting_host': BookingStatus.PENDING,
    'awaiting_payment': BookingStatus.PENDING,
    'hold': BookingStatus.PENDING,
    'confirmed': BookingStatus.CONFIRMED,
    'approved': BookingStatus.CONFIRMED,
    'paid': BookingStatus.CONFIRMED,
    'checked_in': BookingStatus.CONFIRMED,
    'in_progress': BookingStatus.CONFIRMED,
    'completed': BookingStatus.COMPLETED,
    'checked_out': BookingStatus.COMPLETED,
    'cancelled': BookingStatus.CANCELLED,
    'canceled': BookingStatus.CANCELLED,
    'cancelled_by_guest': BookingStatus.CANCELLED,
    'cancelled_by_host': BookingStatus.CANCELLED,
    'declined': BookingStatus.CANCELLED,
    'rejected': BookingStatus.CANCELLED,
    'expired': BookingStatus.EXPIRED,
}

ACTIVE_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.COMPLETED,
})


def canonical_status(raw) -> BookingStatus:
    if isinstance(raw, BookingStatus):
        return raw
    key = str(raw or '').strip().lower()
    try:
        return BOOKING_STATUS_ALIASES[key]
    except KeyError:
        raise InvalidStatus(f"Unknown booking status: {raw!r}") from None


@dataclass(frozen=True)
class PartyComposition:
    adults: int = 1
    children: int = 0
    infants: int = 0
    pets: int = 0

    def __post_init__(self):
        for name in ('adults', 'children', 'infants', 'pets'):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 0:
                raise ValueError(f"{name} must be a non-negative integer")
        if self.adults < 1:
            raise ValueError("At least one adult is required")

    @property
    def total_guests(self) -> int:
        """Pets do not count against capacity"""
        return self.adults + self.children + self.infants


def normalize_phone(phone: str) -> str:
    return re.sub(r'\D', '', phone or '')


@dataclass(frozen=True)
class ContactIdentity:
    """
    Who the booking is for

    Either a registered user (user_id) or a walk-in guest identified by
    name plus at least one of email / phone.
    """
    user_id: str | None = None
    name: str = ''
    email: str = ''
    phone: str = ''

    def __post_init__(self):
        if self.user_id:
            return
        if not self.name.strip():
            raise ValueError("Walk-in contact requires a name")
        if not self.email.strip() and not normalize_phone(self.phone):
            raise ValueError("Walk-in contact requires an email or a phone number")

    @property
    def is_registered(self) -> bool:
        return bool(self.user_id)

    @property
    def redeemer_key(self) -> str:
        """Stable key used for per-user promotion limits"""
        if self.user_id:
            return f"user:{self.user_id}"
        if self.email.strip():
            return f"contact:{self.email.strip().lower()}"
        return f"contact:{normalize_phone(self.phone)}"


@dataclass(frozen=True)
class BookingRequest:
    listing_id: str
    dates: DateRange
    party: PartyComposition
    contact: ContactIdentity
    promotion_code: str | None = None
    special_requests: str = ''


@dataclass(frozen=True)
class Listing:
    """Read-only snapshot of a listing at request time"""
    id: str
    max_guests: int
    base_price: int
    cleaning_fee: int = 0
    service_fee: int | None = None   # host override; None means platform rate
    allows_pets: bool = False
    instant_bookable: bool = False
    is_active: bool = True
    property_type: str = ''
    currency: str = 'VND'


@dataclass(frozen=True)
class ExistingReservation:
    dates: DateRange
    status: BookingStatus
    booking_id: str | None = None

    @classmethod
    def from_raw(cls, dates: DateRange, status, booking_id=None) -> 'ExistingReservation':
        return cls(dates=dates, status=canonical_status(status), booking_id=booking_id)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


@dataclass(frozen=True)
class BlockedInterval:
    dates: DateRange
    reason: str = ''


@dataclass(eq=False)
class Booking(Aggregate):
    """
    Booking Aggregate Root (accepted record)

    Key invariants:
    - dates were conflict-free when the booking was accepted
    - pricing satisfies total = base + cleaning + service - discount >= 0
    - only discount lines of a PENDING booking change after acceptance
    """
    booking_code: str = ''
    listing_id: str = ''
    contact: ContactIdentity | None = None
    dates: DateRange | None = None
    party: PartyComposition = field(default_factory=PartyComposition)
    priced: 'PricedBooking | None' = None
    status: BookingStatus = BookingStatus.PENDING
    instant_book: bool = False
    applied_discounts: Tuple = ()
    special_requests: str = ''
    accepted_at: datetime | None = None

    @property
    def nights(self) -> int:
        return self.dates.nights if self.dates else 0

    @property
    def promotion_code(self) -> str | None:
        for entry in self.applied_discounts:
            if entry.kind == 'promotion':
                return entry.code
        return None

    @property
    def membership_discount(self) -> int:
        return sum(entry.amount for entry in self.applied_discounts if entry.kind == 'membership')

    @property
    def promotion_discount(self) -> int:
        return sum(entry.amount for entry in self.applied_discounts if entry.kind == 'promotion')

    @property
    def is_editable(self) -> bool:
        return self.status is BookingStatus.PENDING

    def add_discount(self, discount):
        """Append a discount line and reprice"""
        if not self.is_editable:
            raise ValueError(f"Booking {self.booking_code} is {self.status.value}, discounts are locked")
        self.applied_discounts = tuple(self.applied_discounts) + (discount,)
        self._reprice()

    def remove_promotion(self, code: str):
        """Drop the promotion line for `code`, returning it (or None)"""
        if not self.is_editable:
            raise ValueError(f"Booking {self.booking_code} is {self.status.value}, discounts are locked")
        removed = None
        kept = []
        for entry in self.applied_discounts:
            if removed is None and entry.kind == 'promotion' and entry.code == code:
                removed = entry
            else:
                kept.append(entry)
        if removed is not None:
            self.applied_discounts = tuple(kept)
            self._reprice()
        return removed

    def _reprice(self):
        self.priced = self.priced.with_discount(sum(entry.amount for entry in self.applied_discounts))

    def __str__(self):
        return f"Booking {self.booking_code} ({self.status.value})"
