"""Pydantic schemas for bookings and tickets."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from cavgo.api.schemas.common import Amount
from cavgo.domain.enums import BookingStatus

# =============================================================================
# Bookings
# =============================================================================


class BookingCreate(BaseModel):
    trip_id: UUID
    number_of_tickets: int = Field(1, ge=1, le=50)
    price: Amount
    destination: str | None = Field(None, max_length=200)
    nfc_id: str | None = Field(None, description="Card tapped on a POS device")


class AgentBookingCreate(BaseModel):
    trip_id: UUID
    destination: str = Field(min_length=1, max_length=200)
    client_name: str = Field(min_length=1, max_length=200)
    number_of_tickets: int = Field(1, ge=1, le=50)
    price: Amount


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    id: UUID
    trip_id: UUID
    user_id: UUID | None = None
    destination: str | None = None
    number_of_tickets: int
    price: int
    card_id: UUID | None = None
    pos_id: UUID | None = None
    agent_id: UUID | None = None
    client_name: str | None = None
    status: BookingStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AgentBookingResponse(BaseModel):
    booking: BookingResponse
    wallet_balance: int


# =============================================================================
# Tickets
# =============================================================================


class TicketResponse(BaseModel):
    id: UUID
    booking_id: UUID
    user_id: UUID | None = None
    trip_id: UUID
    reference: str
    boarding_code: str
    qr_code_data: str
    nfc_id: str
    valid_from: datetime
    valid_until: datetime
    is_valid: bool

    model_config = ConfigDict(from_attributes=True)


class TicketVerifyRequest(BaseModel):
    qr_code_data: str = Field(min_length=1)


class TicketVerifyResponse(BaseModel):
    valid: bool
    reason: str | None = None
    booking_id: UUID | None = None
    trip_id: UUID | None = None
    owner_id: UUID | None = None
    valid_from: datetime | None = None
    valid_until: datetime | None = None
