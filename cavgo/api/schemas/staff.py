"""Pydantic schemas for agents, super users and POS machines."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from cavgo.api.schemas.common import DigitsPhone
from cavgo.domain.enums import AccountStatus, PosStatus, TransactionType

# =============================================================================
# Agents
# =============================================================================


class AgentCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone_number: DigitsPhone
    password: str = Field(min_length=6, max_length=128)
    status: AccountStatus = AccountStatus.ACTIVE


class AgentUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone_number: DigitsPhone | None = None
    password: str | None = Field(None, min_length=6, max_length=128)
    status: AccountStatus | None = None


class AgentResponse(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    phone_number: str
    status: AccountStatus
    wallet_balance: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AgentAuthResponse(BaseModel):
    agent: AgentResponse
    token: str


class AgentTransactionCreate(BaseModel):
    type: TransactionType
    amount: int = Field(gt=0, description="Amount in RWF")
    description: str | None = Field(None, max_length=500)


class AgentTransactionResponse(BaseModel):
    id: UUID
    type: TransactionType
    amount: int
    description: str | None = None
    date: datetime

    model_config = ConfigDict(from_attributes=True)


class AgentWalletResponse(BaseModel):
    agent_id: UUID
    wallet_balance: int
    transactions: list[AgentTransactionResponse]


# =============================================================================
# Super users
# =============================================================================


class SuperUserCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone_number: DigitsPhone
    password: str = Field(min_length=6, max_length=128)


class SuperUserUpdate(BaseModel):
    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone_number: DigitsPhone | None = None
    password: str | None = Field(None, min_length=6, max_length=128)
    status: AccountStatus | None = None


class SuperUserResponse(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    phone_number: str
    status: AccountStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SuperUserAuthResponse(BaseModel):
    superuser: SuperUserResponse
    access_token: str
    refresh_token: str


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class AccessTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


# =============================================================================
# POS machines
# =============================================================================


class PosMachineCreate(BaseModel):
    serial_number: str = Field(min_length=1, max_length=128)
    car_plate: str = Field(min_length=1, max_length=32)


class PosMachineUpdate(BaseModel):
    status: PosStatus | None = None
    car_plate: str | None = Field(None, min_length=1, max_length=32)


class PosMachineResponse(BaseModel):
    id: UUID
    serial_number: str
    status: PosStatus
    linked_car_id: UUID | None = None
    assigned_date: datetime | None = None
    last_activity_date: datetime | None = None
    user_id: UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PosTokenResponse(BaseModel):
    pos: PosMachineResponse
    token: str
