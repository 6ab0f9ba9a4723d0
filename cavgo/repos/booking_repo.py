"""
Repository functions for bookings.

Booking lifecycle:
- Created Pending with its seats reserved on the trip
- Paid (card wallet, agent balance or mobile money) -> Waiting Board, ticket issued
- Expired / Cancelled -> seats go back to the trip
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ForbiddenError, InsufficientFundsError
from cavgo.core.observability import metrics
from cavgo.db.models import Agent, Booking, Card, Trip, User
from cavgo.domain.enums import (
    SEAT_RELEASING_STATUSES,
    TICKETED_STATUSES,
    BookingStatus,
    TransactionType,
)
from cavgo.repos.agent_repo import add_agent_transaction
from cavgo.repos.common import delete_entity, get_or_404
from cavgo.repos.trip_repo import get_trip, release_seats, reserve_seats
from cavgo.services.card_payment import pay_with_card
from cavgo.services.tickets import issue_ticket_for_booking

logger = logging.getLogger(__name__)


def check_booking_owner(booking: Booking, user: User) -> None:
    if booking.user_id != user.id:
        raise ForbiddenError("Permission denied", details={"booking_id": str(booking.id)})


async def get_booking(db: AsyncSession, booking_id: Any) -> Booking:
    return await get_or_404(db, Booking, booking_id, label="Booking", id_field="booking_id")


async def list_bookings(db: AsyncSession, *, trip_id: uuid.UUID | None = None) -> list[Booking]:
    stmt = select(Booking).order_by(Booking.created_at)
    if trip_id is not None:
        stmt = stmt.where(Booking.trip_id == trip_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_user_bookings(db: AsyncSession, user_id: uuid.UUID) -> list[Booking]:
    """A user's bookings, newest first."""
    result = await db.execute(
        select(Booking).where(Booking.user_id == user_id).order_by(Booking.created_at.desc())
    )
    return list(result.scalars().all())


async def create_booking(
    db: AsyncSession,
    *,
    trip_id: uuid.UUID,
    number_of_tickets: int,
    price: int,
    destination: str | None = None,
    user_id: uuid.UUID | None = None,
    card: Card | None = None,
    pos_id: uuid.UUID | None = None,
) -> Booking:
    """
    Reserve seats and create a booking for a passenger.

    When the card's wallet covers the price the booking is paid on the spot
    (Waiting Board, ticket issued); otherwise it stays Pending.

    Raises:
        NotFoundError: If the trip does not exist
        ConflictError: If the trip has too few seats left
    """
    await reserve_seats(db, trip_id, number_of_tickets)

    booking = Booking(
        trip_id=trip_id,
        user_id=user_id,
        destination=destination,
        number_of_tickets=number_of_tickets,
        price=price,
        card_id=card.id if card else None,
        pos_id=pos_id,
        status=BookingStatus.PENDING,
    )
    db.add(booking)
    await db.flush()

    if card is not None:
        wallet = await pay_with_card(db, card, price, "Payment for booking by card")
        if wallet is not None:
            booking.status = BookingStatus.WAITING_BOARD
            await issue_ticket_for_booking(db, booking)

    channel = "pos" if pos_id else "app"
    metrics.bookings_created_total.labels(channel=channel, status=booking.status.value).inc()
    logger.info(
        "Created booking %s on trip %s (%s seat(s), %s)",
        booking.id,
        trip_id,
        number_of_tickets,
        booking.status.value,
    )
    return booking


async def create_agent_booking(
    db: AsyncSession,
    *,
    agent: Agent,
    trip_id: uuid.UUID,
    destination: str,
    client_name: str,
    number_of_tickets: int,
    price: int,
) -> Booking:
    """
    Sell seats from an agent's balance.

    The debit, the seat reservation and the booking share one transaction,
    so the agent is never charged for a booking that was not saved.

    Raises:
        InsufficientFundsError: If the price exceeds the agent's balance
    """
    if price > agent.wallet_balance:
        raise InsufficientFundsError(
            "Insufficient balance for agent",
            details={"balance": agent.wallet_balance, "price": price},
        )
    await get_trip(db, trip_id)

    await add_agent_transaction(
        db,
        agent,
        type=TransactionType.DEBIT,
        amount=price,
        description=f"Booking for {client_name}",
    )
    await reserve_seats(db, trip_id, number_of_tickets)

    booking = Booking(
        trip_id=trip_id,
        agent_id=agent.id,
        destination=destination,
        client_name=client_name,
        number_of_tickets=number_of_tickets,
        price=price,
        status=BookingStatus.WAITING_BOARD,
    )
    db.add(booking)
    await db.flush()
    await issue_ticket_for_booking(db, booking)

    metrics.bookings_created_total.labels(channel="agent", status=booking.status.value).inc()
    logger.info(
        "Agent %s booked %s seat(s) on trip %s; balance now %s",
        agent.id,
        number_of_tickets,
        trip_id,
        agent.wallet_balance,
    )
    return booking


async def update_booking_status(
    db: AsyncSession, booking: Booking, status: BookingStatus
) -> Trip | None:
    """
    Move a booking to `status`, keeping seats and tickets consistent.

    Returns:
        The trip when its seat count changed, otherwise None
    """
    previous = booking.status
    trip = None

    if status in SEAT_RELEASING_STATUSES and previous not in SEAT_RELEASING_STATUSES:
        trip = await release_seats(db, booking.trip_id, booking.number_of_tickets)
    elif previous in SEAT_RELEASING_STATUSES and status not in SEAT_RELEASING_STATUSES:
        trip = await reserve_seats(db, booking.trip_id, booking.number_of_tickets)

    booking.status = status
    await db.flush()

    if status in TICKETED_STATUSES:
        await issue_ticket_for_booking(db, booking)

    logger.info("Booking %s status %s -> %s", booking.id, previous.value, status.value)
    return trip


async def delete_booking(db: AsyncSession, booking: Booking) -> Trip | None:
    """Delete a booking, returning its seats if it still held them."""
    trip = None
    if booking.status not in SEAT_RELEASING_STATUSES:
        trip = await release_seats(db, booking.trip_id, booking.number_of_tickets)
    await delete_entity(db, booking)
    logger.info("Deleted booking %s", booking.id)
    return trip
