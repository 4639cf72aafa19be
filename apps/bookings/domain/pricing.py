"""
Pricing Calculator

Turns a listing and a stay into a PricedBooking. All amounts are integers
in whole currency units.

The service fee is the platform's take. It is computed once, before any
discount, and carried through unchanged: promotions lower what the guest
pays, never the fee base.
"""

from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP

from shared.domain.value_objects import DateRange
from apps.bookings.domain.entities import Listing

DEFAULT_SERVICE_FEE_RATE = Decimal('0.10')


def round_amount(value) -> int:
    """Round half up to a whole currency unit"""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricedBooking:
    nights: int
    base_price_total: int
    cleaning_fee: int
    service_fee: int
    discount: int = 0
    currency: str = 'VND'

    def __post_init__(self):
        if self.nights < 1:
            raise ValueError("A stay must be at least one night")
        for name in ('base_price_total', 'cleaning_fee', 'service_fee', 'discount'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")
        if self.discount > self.subtotal:
            raise ValueError("Discount cannot exceed the pre-discount total")

    @property
    def subtotal(self) -> int:
        """Pre-discount total"""
        return self.base_price_total + self.cleaning_fee + self.service_fee

    @property
    def total(self) -> int:
        return self.subtotal - self.discount

    def with_discount(self, amount: int) -> 'PricedBooking':
        """Copy with `amount` as the total discount, capped at the subtotal"""
        amount = max(0, min(int(amount), self.subtotal))
        return replace(self, discount=amount)

    def to_dict(self) -> dict:
        return {
            'nights': self.nights,
            'base_price_total': self.base_price_total,
            'cleaning_fee': self.cleaning_fee,
            'service_fee': self.service_fee,
            'discount': self.discount,
            'subtotal': self.subtotal,
            'total': self.total,
            'currency': self.currency,
        }


class PricingCalculator:
    """Prices a validated stay (never fails for validated input)"""

    def __init__(self, service_fee_rate: Decimal = DEFAULT_SERVICE_FEE_RATE):
        rate = Decimal(str(service_fee_rate))
        if rate < 0:
            raise ValueError("Service fee rate cannot be negative")
        self.service_fee_rate = rate

    def price(self, listing: Listing, dates: DateRange) -> PricedBooking:
        nights = dates.nights
        base_price_total = listing.base_price * nights
        return PricedBooking(
            nights=nights,
            base_price_total=base_price_total,
            cleaning_fee=listing.cleaning_fee or 0,
            service_fee=self.service_fee(listing, base_price_total),
            currency=listing.currency,
        )

    def service_fee(self, listing: Listing, base_price_total: int) -> int:
        if listing.service_fee is not None and listing.service_fee > 0:
            return listing.service_fee
        return round_amount(Decimal(base_price_total) * self.service_fee_rate)
