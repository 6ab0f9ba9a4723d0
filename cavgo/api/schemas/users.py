"""Pydantic schemas for users, companies and drivers."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from cavgo.domain.enums import DriverType, UserType

# =============================================================================
# Users
# =============================================================================


class UserRegister(BaseModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone_number: str = Field(min_length=1, max_length=32)
    password: str = Field(min_length=6, max_length=128)


class LoginRequest(BaseModel):
    """Email/password credentials, shared by every principal kind."""

    email: EmailStr
    password: str = Field(min_length=1)


class UserSelfUpdate(BaseModel):
    """Fields a user may change on their own account."""

    first_name: str | None = Field(None, min_length=1, max_length=100)
    last_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone_number: str | None = Field(None, min_length=1, max_length=32)
    password: str | None = Field(None, min_length=6, max_length=128)
    default_card_id: UUID | None = None


class UserAdminUpdate(UserSelfUpdate):
    """Admin update; may also change the account type and company."""

    user_type: UserType | None = None
    company_id: UUID | None = None


class UserResponse(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    phone_number: str
    user_type: UserType
    company_id: UUID | None = None
    default_card_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserAuthResponse(BaseModel):
    user: UserResponse
    token: str


# =============================================================================
# Companies
# =============================================================================


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    location: str = Field(min_length=1, max_length=200)
    email: EmailStr


class CompanyUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    location: str | None = Field(None, min_length=1, max_length=200)
    email: EmailStr | None = None


class CompanyResponse(BaseModel):
    id: UUID
    name: str
    location: str
    email: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Drivers
# =============================================================================


class DriverRegister(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    phone_number: str = Field(min_length=1, max_length=32)
    driver_type: DriverType
    license: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=6, max_length=128)
    company_id: UUID | None = Field(None, description="Required unless driver_type is private")


class DriverUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    email: EmailStr | None = None
    phone_number: str | None = Field(None, min_length=1, max_length=32)
    driver_type: DriverType | None = None
    license: str | None = Field(None, min_length=1, max_length=100)
    password: str | None = Field(None, min_length=6, max_length=128)
    company_id: UUID | None = None


class DriverResponse(BaseModel):
    id: UUID
    name: str
    email: str
    phone_number: str
    driver_type: DriverType
    license: str
    company_id: UUID | None = None
    car_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DriverAuthResponse(BaseModel):
    driver: DriverResponse
    token: str
