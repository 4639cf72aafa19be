"""
Base Domain Classes

Building blocks shared by the booking, promotion and rewards contexts:
- ValueObject: Immutable objects compared by value
- Aggregate: Consistency boundary that collects domain events
- DomainEvent: Something that happened and must be announced after commit
"""

from abc import ABC
from dataclasses import dataclass, field
from datetime import datetime
from typing import List
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


@dataclass
class Aggregate(ABC):
    """
    Base class for aggregate roots

    Aggregates carry their identity and collect domain events that the
    unit of work publishes once the surrounding transaction has committed.
    """
    id: UUID = field(default_factory=uuid4)
    _events: List['DomainEvent'] = field(default_factory=list, repr=False, init=False, compare=False)

    def add_event(self, event: 'DomainEvent'):
        """Add a domain event to be published"""
        self._events.append(event)

    def clear_events(self):
        """Clear all collected events (called after publishing)"""
        self._events.clear()

    @property
    def events(self) -> List['DomainEvent']:
        """Get copy of collected events"""
        return self._events.copy()

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return False
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Events are plain records: handlers must not be able to mutate the
    aggregate that raised them.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)
    aggregate_id: UUID | None = None

    def to_dict(self) -> dict:
        """Convert event to dictionary for serialization"""
        return {
            'event_id': str(self.event_id),
            'event_type': self.__class__.__name__,
            'occurred_at': self.occurred_at.isoformat(),
            'aggregate_id': str(self.aggregate_id) if self.aggregate_id else None,
        }
