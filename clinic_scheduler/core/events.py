"""Change events for live schedule refresh.

Routers publish through the EventBroker stored on app.state. Delivery to
browsers is up to whatever subscribes to the broker.
"""
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    APPOINTMENTS = "appointments"


@dataclass(frozen=True)
class AppointmentEvent:
    appointment_id: int
    action: str  # created | updated | status | canceled
    status: str | None = None


Subscriber = Callable[[AppointmentEvent], None]


class EventBroker(Protocol):
    def publish(self, channel: Channel, event: AppointmentEvent) -> None: ...


class InMemoryBroker:
    """Synchronous in-process broker. Subscriber errors propagate to the publisher."""

    def __init__(self) -> None:
        self._subscribers: dict[Channel, list[Subscriber]] = defaultdict(list)

    def subscribe(self, channel: Channel, callback: Subscriber) -> Callable[[], None]:
        self._subscribers[channel].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[channel]:
                self._subscribers[channel].remove(callback)

        return unsubscribe

    def publish(self, channel: Channel, event: AppointmentEvent) -> None:
        subscribers = list(self._subscribers.get(channel, ()))
        logger.debug("Publishing %s on %s to %d subscriber(s)", event, channel.value, len(subscribers))
        for callback in subscribers:
            callback(event)
