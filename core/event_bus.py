"""
Synchronous in-process event bus.

Services publish after their transaction commits; handlers run right away
on the publishing thread. A failing handler is logged and skipped, since
the change that raised the event is already durable.
"""

import logging
from typing import Callable

from core.events import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]


class EventBus:
    """
    Subscribe by event class, publish by instance.

    Subscribing to a base class (TaskEvent, DomainEvent) also receives its
    subclasses. Handlers for one event run most-specific class first, then
    in subscription order.
    """

    def __init__(self):
        self._handlers: dict[type, list[Handler]] = {}

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def publish(self, event: DomainEvent) -> None:
        """Deliver ``event`` to every matching handler."""
        for event_type in type(event).__mro__:
            for handler in self._handlers.get(event_type, ()):
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        "Handler %s failed for %s (event_id=%s)",
                        getattr(handler, "__name__", repr(handler)),
                        type(event).__name__,
                        event.event_id,
                    )
