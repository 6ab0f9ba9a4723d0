"""Pydantic schemas for passenger schedules."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from cavgo.domain.enums import MatchType, ScheduleStatus


class ScheduleCreate(BaseModel):
    origin_id: UUID
    destination_id: UUID
    time: datetime


class ScheduleUpdate(BaseModel):
    origin_id: UUID | None = None
    destination_id: UUID | None = None
    time: datetime | None = None
    status: ScheduleStatus | None = None


class ScheduleResponse(BaseModel):
    id: UUID
    user_id: UUID
    origin_id: UUID
    destination_id: UUID
    time: datetime
    origin_type: MatchType
    destination_type: MatchType
    matched_route_ids: list[str]
    status: ScheduleStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
