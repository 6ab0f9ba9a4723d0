"""
FastAPI routes for cars. Company users only see and manage their own fleet.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.fleet import CarCreate, CarResponse, CarUpdate
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.security import require_user_types
from cavgo.db.models import Car, User
from cavgo.domain.enums import UserType
from cavgo.repos import car_repo

router = APIRouter(prefix="/cars", tags=["cars"])

require_fleet_manager = require_user_types(UserType.ADMIN, UserType.COMPANY)


@router.get("", response_model=list[CarResponse])
async def list_cars(db: AsyncDbSession, user: User = Depends(require_fleet_manager)) -> list[Car]:
    if user.is_admin:
        return await car_repo.list_cars(db)
    if user.company_id is None:
        return []
    return await car_repo.list_cars(db, company_id=user.company_id)


@router.get("/{car_id}", response_model=CarResponse)
async def get_car(
    car_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_fleet_manager)
) -> Car:
    car = await car_repo.get_car(db, car_id)
    car_repo.check_car_access(user, car)
    return car


@router.post("", response_model=CarResponse, status_code=status.HTTP_201_CREATED)
async def create_car(
    payload: CarCreate, db: AsyncDbSession, user: User = Depends(require_fleet_manager)
) -> Car:
    """Register a car. A company user's company is always the owner."""
    car = await car_repo.create_car(db, creator=user, **payload.model_dump())
    await db.commit()
    return car


@router.patch("/{car_id}", response_model=CarResponse)
async def update_car(
    car_id: uuid.UUID,
    payload: CarUpdate,
    db: AsyncDbSession,
    user: User = Depends(require_fleet_manager),
) -> Car:
    car = await car_repo.get_car(db, car_id)
    car_repo.check_car_access(user, car)
    changes = payload.model_dump(exclude_unset=True)
    if not user.is_admin:
        changes.pop("owner_company_id", None)
        changes.pop("private_owner", None)
    car = await car_repo.update_car(db, car, changes)
    await db.commit()
    return car


@router.delete("/{car_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_car(
    car_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_fleet_manager)
) -> Response:
    car = await car_repo.get_car(db, car_id)
    car_repo.check_car_access(user, car)
    await car_repo.delete_car(db, car)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
