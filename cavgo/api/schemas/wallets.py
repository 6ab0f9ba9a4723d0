"""Pydantic schemas for NFC cards and stored-value wallets."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from cavgo.domain.enums import TransactionType

# =============================================================================
# Cards
# =============================================================================


class CardIssue(BaseModel):
    nfc_id: str = Field(min_length=1, max_length=128)
    email: EmailStr
    phone: str = Field(min_length=1, max_length=32)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)


class CardUpdate(BaseModel):
    nfc_id: str | None = Field(None, min_length=1, max_length=128)
    user_id: UUID | None = None


class CardResponse(BaseModel):
    id: UUID
    nfc_id: str
    card_id: str
    user_id: UUID | None = None
    creator_id: UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Wallets
# =============================================================================


class WalletCreate(BaseModel):
    nfc_id: str | None = Field(None, description="Preferred; the card must be linked to a user")
    user_id: UUID | None = None

    @model_validator(mode="after")
    def validate_owner(self) -> WalletCreate:
        if not self.nfc_id and self.user_id is None:
            raise ValueError("Either nfc_id or user_id must be provided")
        return self


class WalletTransactionIn(BaseModel):
    type: TransactionType
    amount: int = Field(gt=0, description="Amount in RWF")
    description: str | None = Field(None, max_length=500)


class WalletTransactionRequest(BaseModel):
    nfc_id: str = Field(min_length=1)
    transaction: WalletTransactionIn


class WalletTransactionResponse(BaseModel):
    id: UUID
    type: TransactionType
    amount: int
    description: str | None = None
    date: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletResponse(BaseModel):
    id: UUID
    user_id: UUID | None = None
    card_id: UUID | None = None
    balance: int
    transactions: list[WalletTransactionResponse]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletTransactionResult(BaseModel):
    wallet: WalletResponse
    agent_balance: int | None = Field(None, description="Set when an agent paid for the credit")
