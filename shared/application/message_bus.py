"""
Message Bus

Routes domain events raised by the engine ("booking accepted", "reward
earned", ...) to their subscribers. Delivery is fire-and-forget: a failing
subscriber is logged and never undoes the committed work that raised the
event.
"""

from typing import Callable, Dict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    """Event dispatcher: multiple handlers per event type (1:N)"""

    def __init__(self):
        self._subscribers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler):
        """Register a handler; registering the same handler twice is a no-op"""
        handlers = self._subscribers.setdefault(event_type, [])
        if handler in handlers:
            return
        handlers.append(handler)
        logger.debug(f"Subscribed {getattr(handler, '__name__', handler)} to {event_type.__name__}")

    def handlers_for(self, event_type: Type[DomainEvent]) -> List[EventHandler]:
        return list(self._subscribers.get(event_type, []))

    def publish(self, events: Iterable[DomainEvent]) -> int:
        """
        Deliver events to every subscriber

        Returns the number of successful deliveries. Errors in handlers are
        logged but don't stop other handlers.
        """
        delivered = 0
        for event in events:
            event_type = type(event)
            handlers = self._subscribers.get(event_type, [])

            if not handlers:
                logger.debug(f"No subscribers for event {event_type.__name__}")
                continue

            logger.info(f"Publishing event: {event_type.__name__} (ID: {event.event_id})")

            for handler in handlers:
                name = getattr(handler, '__name__', repr(handler))
                try:
                    handler(event)
                    delivered += 1
                except Exception as e:
                    logger.error(
                        f"Error in event handler {name} "
                        f"for event {event_type.__name__}: {e}",
                        exc_info=True
                    )
        return delivered

    def clear(self):
        self._subscribers.clear()


# Global message bus instance
message_bus = MessageBus()
