"""
Promotion Domain Events

Published after the redemption transaction commits.
"""

from dataclasses import dataclass

from shared.domain.base import DomainEvent


@dataclass
class PromotionRedeemed(DomainEvent):
    """
    Event: a promotion was redeemed for a booking

    Triggers:
    - Host/admin coupon analytics
    """
    promotion_code: str = ''
    redeemer_key: str = ''
    booking_id: str = ''
    amount: int = 0


@dataclass
class PromotionReleased(DomainEvent):
    """Event: a redemption was undone and the usage slot freed"""
    promotion_code: str = ''
    redeemer_key: str = ''
    booking_id: str = ''
