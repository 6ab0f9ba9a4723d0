"""Pydantic schemas for cars, locations and routes."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from cavgo.api.schemas.common import Amount
from cavgo.domain.enums import LocationType

# =============================================================================
# Cars
# =============================================================================


class CarCreate(BaseModel):
    plate_number: str = Field(min_length=1, max_length=32, examples=["RAB123A"])
    number_of_seats: int = Field(ge=1, le=100)
    owner_company_id: UUID | None = Field(None, description="Ignored for company users")
    private_owner: str | None = Field(None, max_length=200)
    driver_id: UUID | None = None
    is_occupied: bool = False


class CarUpdate(BaseModel):
    plate_number: str | None = Field(None, min_length=1, max_length=32)
    number_of_seats: int | None = Field(None, ge=1, le=100)
    owner_company_id: UUID | None = None
    private_owner: str | None = Field(None, max_length=200)
    driver_id: UUID | None = Field(None, description="Reassign the car to this driver")
    is_occupied: bool | None = None


class CarResponse(BaseModel):
    id: UUID
    plate_number: str
    number_of_seats: int
    owner_company_id: UUID | None = None
    private_owner: str | None = None
    driver_id: UUID | None = None
    is_occupied: bool
    user_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Locations
# =============================================================================


class LocationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    location_type: LocationType = LocationType.OTHER
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    address: str | None = Field(None, max_length=500)
    google_place_id: str | None = Field(None, max_length=200)


class LocationUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    location_type: LocationType | None = None
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)
    address: str | None = Field(None, max_length=500)
    google_place_id: str | None = Field(None, max_length=200)


class LocationResponse(BaseModel):
    id: UUID
    name: str
    location_type: LocationType
    lat: float
    lng: float
    address: str | None = None
    google_place_id: str | None = None

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Routes
# =============================================================================


class RouteCreate(BaseModel):
    origin_id: UUID
    destination_id: UUID
    price: Amount
    google_maps_route_id: str | None = Field(None, max_length=500)

    @field_validator("destination_id")
    @classmethod
    def validate_distinct_endpoints(cls, v: UUID, info: ValidationInfo) -> UUID:
        if info.data.get("origin_id") == v:
            raise ValueError("origin and destination must differ")
        return v


class RouteResponse(BaseModel):
    id: UUID
    origin_id: UUID | None = None
    destination_id: UUID | None = None
    origin: LocationResponse | None = None
    destination: LocationResponse | None = None
    price: int
    google_maps_route_id: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
