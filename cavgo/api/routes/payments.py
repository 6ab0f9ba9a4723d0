"""
FastAPI routes for mobile-money payments.

`POST /payments/callback` is called by the gateway, not by app clients. It
carries no bearer token; the gateway proves itself with MOMO_CALLBACK_TOKEN.
"""

import hmac
import logging
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from cavgo.api.schemas.payments import (
    DepositCreate,
    PaymentCallback,
    PaymentCreate,
    PaymentResponse,
    PhonePaymentResponse,
)
from cavgo.core.config import settings
from cavgo.core.dependencies import AsyncDbSession, Momo
from cavgo.core.errors import ForbiddenError
from cavgo.core.security import require_agent, require_user
from cavgo.db.models import Agent, Payment, PhonePayment, User
from cavgo.domain.enums import PaymentStatus
from cavgo.repos import payment_repo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def verify_callback_token(
    x_callback_token: Annotated[str | None, Header()] = None,
    token: Annotated[str | None, Query()] = None,
) -> None:
    """Accept the shared secret from the X-Callback-Token header or `?token=`."""
    expected_token = settings.momo_callback_token
    if not expected_token:
        logger.error(
            "Payment callback received but MOMO_CALLBACK_TOKEN not configured",
            extra={"security_event": True, "event_type": "CALLBACK_NOT_CONFIGURED"},
        )
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment callbacks are not configured",
        )
    presented = x_callback_token or token
    if not presented:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Callback token required",
        )
    if not hmac.compare_digest(presented, expected_token):
        logger.warning(
            "Payment callback with invalid token",
            extra={"security_event": True, "event_type": "CALLBACK_ACCESS_DENIED"},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid callback token",
        )


@router.get("/me", response_model=list[PaymentResponse])
async def list_my_payments(db: AsyncDbSession, user: User = Depends(require_user())) -> list[Payment]:
    return await payment_repo.list_user_payments(db, user.id)


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_user())
) -> Payment:
    payment = await payment_repo.get_payment(db, payment_id)
    if not user.is_admin and payment.user_id != user.id:
        raise ForbiddenError("Permission denied", details={"payment_id": str(payment_id)})
    return payment


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def request_payment(
    payload: PaymentCreate,
    db: AsyncDbSession,
    momo: Momo,
    user: User = Depends(require_user()),
) -> Payment:
    """Ask the gateway to collect a booking's price from a phone."""
    payment = await payment_repo.request_booking_payment(
        db, momo, user=user, booking_id=payload.booking_id, phone_number=payload.phone_number
    )
    await db.commit()
    return payment


@router.post(
    "/callback",
    response_model=PaymentResponse,
    dependencies=[Depends(verify_callback_token)],
)
async def payment_callback(payload: PaymentCallback, db: AsyncDbSession) -> Payment:
    """Settle a payment with the gateway's final status."""
    outcome = PaymentStatus.COMPLETED if payload.succeeded else PaymentStatus.FAILED
    logger.info(
        "Payment callback for transaction %s: status=%s code=%s",
        payload.transaction_id,
        payload.status,
        payload.responsecode,
    )
    payment = await payment_repo.settle_payment(
        db, transaction_id=payload.transaction_id, status=outcome
    )
    await db.commit()
    return payment


@router.post("/deposits", response_model=PhonePaymentResponse, status_code=status.HTTP_201_CREATED)
async def request_deposit(
    payload: DepositCreate,
    db: AsyncDbSession,
    momo: Momo,
    agent: Agent = Depends(require_agent()),
) -> PhonePayment:
    record = await payment_repo.request_agent_deposit(db, momo, agent=agent, **payload.model_dump())
    await db.commit()
    return record
