"""
Payment Watcher Service

Polls the payment state of a Pending booking in a background task:

- paid: the booking moves to Waiting Board and gets its ticket
- unpaid after the timeout: the booking expires and its seats go back to the trip
- left Pending some other way (cancelled, deleted): the watcher stops

Every state change is committed before the trip is re-replicated and a
BOOKING_UPDATED event is published.
"""

import asyncio
import logging
import uuid
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cavgo.core.config import settings
from cavgo.core.db import session_scope
from cavgo.core.observability import metrics
from cavgo.db.models import Booking, Trip
from cavgo.domain.enums import BookingStatus, PaymentStatus
from cavgo.repos.booking_repo import update_booking_status
from cavgo.repos.payment_repo import latest_payment_for_booking
from cavgo.services.booking_events import BOOKING_UPDATED, BookingEventBus, booking_event
from cavgo.services.trip_replicator import TripReplicator

logger = logging.getLogger(__name__)


class PaymentChecker(Protocol):
    async def is_paid(self, db: AsyncSession, booking: Booking) -> bool: ...


class LatestPaymentChecker:
    """A booking is paid when its most recent Payment is Completed."""

    async def is_paid(self, db: AsyncSession, booking: Booking) -> bool:
        payment = await latest_payment_for_booking(db, booking.id)
        return payment is not None and payment.payment_status == PaymentStatus.COMPLETED


class PaymentWatcher:
    """
    Tracks one polling task per pending booking.

    Tasks are keyed by booking id; starting a watcher for a booking that is
    already watched returns the running task.
    """

    def __init__(
        self,
        *,
        session_maker: async_sessionmaker[AsyncSession] | None = None,
        replicator: TripReplicator | None = None,
        event_bus: BookingEventBus | None = None,
        checker: PaymentChecker | None = None,
        poll_interval: float | None = None,
        timeout: float | None = None,
    ) -> None:
        self.session_maker = session_maker
        self.replicator = replicator
        self.event_bus = event_bus
        self.checker = checker or LatestPaymentChecker()
        self.poll_interval = poll_interval or settings.payment_poll_interval_seconds
        self.timeout = timeout or settings.payment_timeout_seconds
        self._tasks: dict[uuid.UUID, asyncio.Task] = {}

    @property
    def active_count(self) -> int:
        return len(self._tasks)

    def is_watching(self, booking_id: uuid.UUID) -> bool:
        return booking_id in self._tasks

    def start(self, booking_id: uuid.UUID) -> asyncio.Task:
        """Start polling for `booking_id`. Must be called from a running loop."""
        running = self._tasks.get(booking_id)
        if running is not None and not running.done():
            return running

        task = asyncio.create_task(self._watch(booking_id), name=f"payment-watch-{booking_id}")
        self._tasks[booking_id] = task
        task.add_done_callback(lambda t: self._on_done(booking_id, t))
        logger.info(
            "Watching payment for booking %s (every %ss, timeout %ss)",
            booking_id,
            self.poll_interval,
            self.timeout,
        )
        return task

    start_payment_check_timer = start

    def cancel(self, booking_id: uuid.UUID) -> bool:
        task = self._tasks.pop(booking_id, None)
        if task is None:
            return False
        task.cancel()
        logger.info("Stopped payment watcher for booking %s", booking_id)
        return True

    async def shutdown(self) -> None:
        """Cancel every watcher and wait for them to finish."""
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info("Payment watcher shut down (%d task(s) cancelled)", len(tasks))

    def _on_done(self, booking_id: uuid.UUID, task: asyncio.Task) -> None:
        if self._tasks.get(booking_id) is task:
            del self._tasks[booking_id]
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Payment watcher for booking %s failed", booking_id, exc_info=exc)

    async def _watch(self, booking_id: uuid.UUID) -> BookingStatus | None:
        elapsed = 0.0
        while True:
            await asyncio.sleep(self.poll_interval)
            elapsed += self.poll_interval
            status = await self.check_once(booking_id, expire=elapsed >= self.timeout)
            if status != BookingStatus.PENDING:
                return status

    async def check_once(self, booking_id: uuid.UUID, *, expire: bool = False) -> BookingStatus | None:
        """
        Run one poll for a booking.

        Args:
            booking_id: Booking to check
            expire: Expire the booking if it is still unpaid

        Returns:
            The booking's status after the poll, or None if it no longer exists
        """
        trip: Trip | None = None
        async with session_scope(self.session_maker) as db:
            booking = await db.get(Booking, booking_id)
            if booking is None:
                logger.info("Booking %s disappeared; stopping payment watcher", booking_id)
                return None
            if booking.status != BookingStatus.PENDING:
                return booking.status

            if await self.checker.is_paid(db, booking):
                await update_booking_status(db, booking, BookingStatus.WAITING_BOARD)
                logger.info("Payment received for booking %s", booking_id)
            elif expire:
                trip = await update_booking_status(db, booking, BookingStatus.EXPIRED)
                metrics.bookings_expired_total.inc()
                logger.info("Booking %s expired without payment", booking_id)
            else:
                return BookingStatus.PENDING
            event = booking_event(booking)

        if trip is not None and self.replicator is not None:
            await self.replicator.replicate(trip)
        if self.event_bus is not None:
            self.event_bus.publish(BOOKING_UPDATED, event)
        return booking.status
