"""
FastAPI routes for trip presets. Presets belong to the creator's company.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.trips import TripPresetCreate, TripPresetResponse, TripPresetUpdate
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.security import require_user_types
from cavgo.db.models import TripPreset, User
from cavgo.domain.enums import UserType
from cavgo.repos import trip_preset_repo

router = APIRouter(prefix="/trip-presets", tags=["trip-presets"])

require_fleet_manager = require_user_types(UserType.ADMIN, UserType.COMPANY)


@router.get("", response_model=list[TripPresetResponse])
async def list_presets(
    db: AsyncDbSession, user: User = Depends(require_fleet_manager)
) -> list[TripPreset]:
    if user.is_admin:
        return await trip_preset_repo.list_all_presets(db)
    if user.company_id is None:
        return []
    return await trip_preset_repo.list_presets(db, company_id=user.company_id)


@router.get("/{preset_id}", response_model=TripPresetResponse)
async def get_preset(
    preset_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_fleet_manager)
) -> TripPreset:
    preset = await trip_preset_repo.get_preset(db, preset_id)
    trip_preset_repo.check_preset_access(user, preset)
    return preset


@router.post("", response_model=TripPresetResponse, status_code=status.HTTP_201_CREATED)
async def create_preset(
    payload: TripPresetCreate, db: AsyncDbSession, user: User = Depends(require_fleet_manager)
) -> TripPreset:
    preset = await trip_preset_repo.create_preset(db, creator=user, **payload.model_dump())
    await db.commit()
    return preset


@router.patch("/{preset_id}", response_model=TripPresetResponse)
async def update_preset(
    preset_id: uuid.UUID,
    payload: TripPresetUpdate,
    db: AsyncDbSession,
    user: User = Depends(require_fleet_manager),
) -> TripPreset:
    preset = await trip_preset_repo.get_preset(db, preset_id)
    trip_preset_repo.check_preset_access(user, preset)
    preset = await trip_preset_repo.update_preset(db, preset, payload.model_dump(exclude_unset=True))
    await db.commit()
    return preset


@router.delete("/{preset_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_preset(
    preset_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_fleet_manager)
) -> Response:
    preset = await trip_preset_repo.get_preset(db, preset_id)
    trip_preset_repo.check_preset_access(user, preset)
    await trip_preset_repo.delete_preset(db, preset)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
