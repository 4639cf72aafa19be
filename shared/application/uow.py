"""
Unit of Work Pattern

Wraps the engine's write steps (booking commit, promotion redemption,
reward crediting) in one database transaction and publishes the domain
events they raise only after that transaction commits.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""

    @abstractmethod
    def collect_events(self, aggregate):
        """Collect events from aggregate root"""


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Usage:
        with DjangoUnitOfWork() as uow:
            listing = listing_repo.get(listing_id, lock=True)
            decision = orchestrator.process(...)
            booking_repo.add(decision.booking)
            uow.collect_events(decision.booking)
        # BookingAccepted is published here, after commit
    """

    def __init__(self, bus=None):
        self._events: List[DomainEvent] = []
        self._transaction = None
        self._bus = bus

    def __enter__(self):
        """Start database transaction"""
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Complete or rollback transaction"""
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Schedule event publishing with transaction.on_commit(), so events
        are only sent after the database commit succeeds.
        """
        logger.debug(f"Committing transaction with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Rollback changes and discard events"""
        logger.warning(f"Rolling back transaction, discarding {len(self._events)} events")
        self._events.clear()

    def collect_events(self, aggregate):
        """Move pending events from the aggregate into this unit of work"""
        new_events = getattr(aggregate, 'events', None)
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()
            logger.debug(
                f"Collected {len(new_events)} events from "
                f"{aggregate.__class__.__name__} (ID: {aggregate.id})"
            )

    def add_event(self, event: DomainEvent):
        self._events.append(event)

    def _publish_events(self, events: List[DomainEvent]):
        bus = self._bus
        if bus is None:
            from shared.application.message_bus import message_bus as bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            bus.publish(events)
        except Exception as e:
            # Work is already committed; delivery failures are for monitoring
            logger.error(f"Error publishing events: {e}", exc_info=True)


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """
    Unit of Work without a database

    Used with the in-memory repositories: events are published straight
    away on a clean exit and dropped on error.
    """

    def __init__(self, bus=None):
        self._events: List[DomainEvent] = []
        self._bus = bus
        self.committed = False
        self.published: List[DomainEvent] = []

    def commit(self):
        events = self._events.copy()
        self._events.clear()
        self.committed = True
        self.published.extend(events)
        if events and self._bus is not None:
            self._bus.publish(events)

    def rollback(self):
        self._events.clear()

    def collect_events(self, aggregate):
        new_events = getattr(aggregate, 'events', None)
        if new_events:
            self._events.extend(new_events)
            aggregate.clear_events()

    def add_event(self, event: DomainEvent):
        self._events.append(event)
