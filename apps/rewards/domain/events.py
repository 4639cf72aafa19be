"""
Rewards Domain Events
"""

from dataclasses import dataclass

from shared.domain.base import DomainEvent


@dataclass
class RewardEarned(DomainEvent):
    """
    Event: points were credited

    Triggers:
    - "You earned N points" notification
    """
    user_id: str = ''
    action_slug: str = ''
    points: int = 0
    balance: int = 0
    reference_id: str | None = None


@dataclass
class TierUpgraded(DomainEvent):
    """Event: the new balance crossed a tier threshold"""
    user_id: str = ''
    previous_tier: str = ''
    new_tier: str = ''
