"""
Event bus for back-office domain events.

Synchronous in-process pub/sub. Handlers run in the publisher's thread after
the primary write has committed, so a failing handler is logged and never
undoes or fails that write.
"""

import logging
from collections import defaultdict
from typing import Callable

from core.events import BackOfficeEvent

logger = logging.getLogger(__name__)


class EventBus:
    """
    In-process event bus.

    Subscribe by event class, publish by event instance. A subscription to a
    base class (e.g. AppointmentEvent) also receives its subclasses.
    """

    def __init__(self):
        self._subscribers: dict[type, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: type[BackOfficeEvent], callback: Callable) -> None:
        self._subscribers[event_type].append(callback)

    def publish(self, event: BackOfficeEvent) -> None:
        """
        Deliver an event to every subscriber of its class or a base class.

        Handlers are called in subscription order, most specific class first.
        """
        for event_type in type(event).__mro__:
            for callback in self._subscribers.get(event_type, ()):
                try:
                    callback(event)
                except Exception:
                    logger.exception(
                        "Handler %s failed for %s (event_id=%s)",
                        getattr(callback, "__name__", repr(callback)),
                        type(event).__name__,
                        event.event_id,
                    )
