"""
In-process booking event bus.

Routes publish BOOKING_ADDED / BOOKING_UPDATED events; WebSocket clients
subscribe through `BookingEventBus.subscribe`. Each subscriber owns a bounded
queue so a slow client drops its oldest events instead of blocking publishers.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

BOOKING_ADDED = "BOOKING_ADDED"
BOOKING_UPDATED = "BOOKING_UPDATED"
TOPICS = frozenset({BOOKING_ADDED, BOOKING_UPDATED})


@dataclass(eq=False)
class Subscription:
    """Registered interest in one topic; iterate it to receive events."""

    topic: str | None
    trip_id: str | None
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=100))

    def wants(self, topic: str, event: dict[str, Any]) -> bool:
        if self.topic is not None and topic != self.topic:
            return False
        if self.trip_id is None:
            return True
        return str(event.get("trip_id")) == self.trip_id

    async def get(self) -> dict[str, Any]:
        return await self.queue.get()

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            yield await self.queue.get()


class BookingEventBus:
    def __init__(self) -> None:
        self._subscriptions: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, topic: str, event: dict[str, Any]) -> int:
        """
        Fan an event out to matching subscribers.

        Returns:
            Number of subscribers the event was delivered to
        """
        if topic not in TOPICS:
            raise ValueError(f"Unknown booking topic: {topic}")

        delivered = 0
        for sub in list(self._subscriptions):
            if not sub.wants(topic, event):
                continue
            if sub.queue.full():
                sub.queue.get_nowait()
                logger.warning("Booking event queue full for %s subscriber; dropped oldest", topic)
            sub.queue.put_nowait({"topic": topic, **event})
            delivered += 1
        logger.debug("Published %s to %d subscriber(s)", topic, delivered)
        return delivered

    def subscribe(self, topic: str | None = None, trip_id: str | None = None) -> Subscription:
        """
        Register for `topic` (every topic when None), optionally only for
        events of one trip.

        The subscription receives events from the moment this returns; call
        `unsubscribe` when done.
        """
        if topic is not None and topic not in TOPICS:
            raise ValueError(f"Unknown booking topic: {topic}")

        sub = Subscription(topic=topic, trip_id=trip_id)
        self._subscriptions.add(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        self._subscriptions.discard(sub)


def booking_event(booking: Any) -> dict[str, Any]:
    """Serializable snapshot of a booking for event payloads."""
    return {
        "booking_id": str(booking.id),
        "trip_id": str(booking.trip_id),
        "status": booking.status.value,
        "number_of_tickets": booking.number_of_tickets,
        "price": booking.price,
        "user_id": str(booking.user_id) if booking.user_id else None,
        "agent_id": str(booking.agent_id) if booking.agent_id else None,
    }
