"""
Repository functions for mobile-money payments.

A booking payment is recorded twice: a PhonePayment row mirrors the raw
gateway request, and a Payment row tracks the booking's payment state until
the gateway calls back.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ConflictError, NotFoundError, ValidationError
from cavgo.db.models import Agent, Payment, PhonePayment, User
from cavgo.domain.enums import BookingStatus, PaymentStatus
from cavgo.repos.booking_repo import check_booking_owner, get_booking
from cavgo.repos.common import get_or_404
from cavgo.repos.trip_repo import get_trip
from cavgo.services.momo import MomoClient

logger = logging.getLogger(__name__)


async def get_payment(db: AsyncSession, payment_id: Any) -> Payment:
    return await get_or_404(db, Payment, payment_id, label="Payment", id_field="payment_id")


async def list_user_payments(db: AsyncSession, user_id: uuid.UUID) -> list[Payment]:
    result = await db.execute(
        select(Payment).where(Payment.user_id == user_id).order_by(Payment.payment_date.desc())
    )
    return list(result.scalars().all())


async def latest_payment_for_booking(db: AsyncSession, booking_id: uuid.UUID) -> Payment | None:
    result = await db.execute(
        select(Payment)
        .where(Payment.booking_id == booking_id)
        .order_by(Payment.payment_date.desc(), Payment.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def request_booking_payment(
    db: AsyncSession,
    momo: MomoClient,
    *,
    user: User,
    booking_id: uuid.UUID,
    phone_number: str,
) -> Payment:
    """
    Ask the gateway to collect a booking's price from a phone.

    The amount is the booking price and the car is the trip's car. The
    Payment stays Pending until the gateway callback settles it.

    Raises:
        NotFoundError: If the booking or its trip does not exist
        ForbiddenError: If the booking belongs to another user
        ConflictError: If the booking is no longer Pending
        PaymentGatewayError: If the gateway rejects the request
    """
    booking = await get_booking(db, booking_id)
    check_booking_owner(booking, user)
    if booking.status != BookingStatus.PENDING:
        raise ConflictError(
            "Only pending bookings can be paid",
            details={"booking_id": str(booking.id), "status": booking.status.value},
        )
    trip = await get_trip(db, booking.trip_id)

    response = await momo.request_payment(phone_number, booking.price)
    transaction_id = response["transaction_id"]

    db.add(
        PhonePayment(
            phone_number=phone_number,
            booking_id=booking.id,
            user_id=user.id,
            reason="Booking payment",
            amount=booking.price,
            description=f"Payment for booking {booking.id}",
            transaction_id=transaction_id,
        )
    )
    payment = Payment(
        booking_id=booking.id,
        amount_paid=booking.price,
        payment_status=PaymentStatus.PENDING,
        car_id=trip.car_id,
        user_id=user.id,
        name=user.first_name,
        phone_number=phone_number,
        transaction_id=transaction_id,
    )
    db.add(payment)
    await db.flush()
    logger.info(
        "Requested payment %s for booking %s (transaction %s)",
        payment.id,
        booking.id,
        transaction_id,
    )
    return payment


async def settle_payment(
    db: AsyncSession, *, transaction_id: str, status: PaymentStatus
) -> Payment:
    """Record the gateway's final answer for a payment request."""
    if status == PaymentStatus.PENDING:
        raise ValidationError("Callback must settle the payment as Completed or Failed")

    result = await db.execute(select(Payment).where(Payment.transaction_id == transaction_id))
    payment = result.scalar_one_or_none()
    if payment is None:
        raise NotFoundError("Payment not found", details={"transaction_id": transaction_id})

    payment.payment_status = status
    await db.flush()
    logger.info("Payment %s settled as %s", payment.id, status.value)
    return payment


async def request_agent_deposit(
    db: AsyncSession,
    momo: MomoClient,
    *,
    agent: Agent,
    phone_number: str,
    amount: int,
    description: str,
) -> PhonePayment:
    """Push `amount` to a phone on an agent's behalf and record the request."""
    if not description.strip():
        raise ValidationError("Description is required for agent deposits")

    response = await momo.request_deposit(phone_number, amount)
    record = PhonePayment(
        phone_number=phone_number,
        agent_id=agent.id,
        reason="Deposit",
        amount=amount,
        description=description,
        transaction_id=response["transaction_id"],
    )
    db.add(record)
    await db.flush()
    logger.info("Agent %s requested deposit of %s (transaction %s)", agent.id, amount, record.transaction_id)
    return record
