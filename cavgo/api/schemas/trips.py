"""Pydantic schemas for trips and trip presets."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from cavgo.api.schemas.common import Amount
from cavgo.domain.enums import TripStatus


class StopPoint(BaseModel):
    """Intermediate stop with the fare charged to get off there."""

    location_id: UUID
    price: Amount = 0

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Trips
# =============================================================================


class TripCreate(BaseModel):
    route_id: UUID
    car_id: UUID
    boarding_time: datetime
    status: TripStatus = TripStatus.SCHEDULED
    reverse_route: bool = False
    stop_points: list[StopPoint] = Field(default_factory=list)


class TripUpdate(BaseModel):
    route_id: UUID | None = None
    car_id: UUID | None = Field(None, description="Changing the car resets available seats")
    boarding_time: datetime | None = None
    status: TripStatus | None = None
    reverse_route: bool | None = None
    stop_points: list[StopPoint] | None = None


class TripResponse(BaseModel):
    id: UUID
    route_id: UUID
    car_id: UUID
    boarding_time: datetime
    status: TripStatus
    user_id: UUID | None = None
    available_seats: int
    reverse_route: bool
    stop_points: list[StopPoint]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Trip presets
# =============================================================================


class TripPresetCreate(BaseModel):
    route_id: UUID
    preset_name: str = Field(min_length=1, max_length=200)
    reverse_route: bool = False
    stop_points: list[StopPoint] = Field(default_factory=list)


class TripPresetUpdate(BaseModel):
    route_id: UUID | None = None
    preset_name: str | None = Field(None, min_length=1, max_length=200)
    reverse_route: bool | None = None
    stop_points: list[StopPoint] | None = None


class TripPresetResponse(BaseModel):
    id: UUID
    route_id: UUID
    preset_name: str
    reverse_route: bool
    stop_points: list[StopPoint]
    user_id: UUID | None = None
    company_id: UUID | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
