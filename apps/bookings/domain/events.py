"""
Booking Domain Events

Events raised when the engine accepts a booking. They are published after
the transaction commits; notification delivery never rolls a booking back.
"""

from dataclasses import dataclass, field

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange


@dataclass
class BookingAccepted(DomainEvent):
    """
    Event: a booking request passed availability, pricing and promotion
    checks and was stored (PENDING or CONFIRMED)

    Triggers:
    - Notify guest ("booking created")
    - Notify host (request to confirm, or instant-book notice)
    """
    booking_id: str = ''
    booking_code: str = ''
    listing_id: str = ''
    status: str = ''
    dates: DateRange | None = None
    total: int = 0
    currency: str = 'VND'
    contact_email: str = ''
    contact_name: str = ''
    user_id: str | None = None
    promotion_code: str | None = None
    extra: dict = field(default_factory=dict)
