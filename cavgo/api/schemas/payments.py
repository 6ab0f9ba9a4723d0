"""Pydantic schemas for mobile-money payments."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from cavgo.api.schemas.common import MomoPhone
from cavgo.domain.enums import PaymentStatus

# =============================================================================
# Payments
# =============================================================================


class PaymentCreate(BaseModel):
    booking_id: UUID
    phone_number: MomoPhone


class PaymentResponse(BaseModel):
    id: UUID
    booking_id: UUID
    amount_paid: int
    payment_status: PaymentStatus
    car_id: UUID | None = None
    payment_date: datetime
    user_id: UUID | None = None
    name: str | None = None
    phone_number: str | None = None
    transaction_id: str | None = None

    model_config = ConfigDict(from_attributes=True)


class PaymentCallback(BaseModel):
    """Gateway notification for a payment request."""

    transaction_id: str = Field(
        min_length=1, validation_alias=AliasChoices("requesttransactionid", "transaction_id")
    )
    status: str = Field(min_length=1, examples=["Successfull"])
    responsecode: str | None = Field(None, examples=["01"])

    @property
    def succeeded(self) -> bool:
        # The gateway reports success with response code 01 and spells the
        # status "Successfull".
        if self.responsecode is not None:
            return self.responsecode == "01"
        return self.status.lower() in {"successfull", "successful", "success"}


class DepositCreate(BaseModel):
    phone_number: MomoPhone
    amount: int = Field(gt=0, description="Amount in RWF")
    description: str = Field(min_length=1, max_length=500)


class PhonePaymentResponse(BaseModel):
    id: UUID
    phone_number: str
    booking_id: UUID | None = None
    user_id: UUID | None = None
    agent_id: UUID | None = None
    reason: str
    amount: int
    description: str | None = None
    transaction_id: str | None = None
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)
