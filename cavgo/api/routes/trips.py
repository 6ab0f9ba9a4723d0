"""
FastAPI routes for trips.

Every committed trip write is mirrored to the trip replica store.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.trips import TripCreate, TripResponse, TripUpdate
from cavgo.core.dependencies import AsyncDbSession, CurrentPrincipal, Replicator
from cavgo.core.errors import ForbiddenError, UnauthorizedError
from cavgo.core.security import require_user_types
from cavgo.db.models import Driver, Trip, User
from cavgo.domain.enums import UserType
from cavgo.repos import car_repo, trip_repo
from cavgo.repos.common import get_or_404

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["trips"])

require_fleet_manager = require_user_types(UserType.ADMIN, UserType.COMPANY)


@router.get("", response_model=list[TripResponse])
async def list_trips(db: AsyncDbSession) -> list[Trip]:
    return await trip_repo.list_trips(db)


@router.get("/driver/{driver_id}", response_model=list[TripResponse])
async def list_driver_trips(
    driver_id: uuid.UUID, db: AsyncDbSession, principal: CurrentPrincipal
) -> list[Trip]:
    """Trips of the car the driver is assigned to."""
    if principal.is_anonymous:
        raise UnauthorizedError("User not authenticated")
    is_self = principal.driver is not None and principal.driver.id == driver_id
    if not (is_self or principal.is_admin):
        raise ForbiddenError("Permission denied", details={"driver_id": str(driver_id)})

    driver = await get_or_404(db, Driver, driver_id, label="Driver", id_field="driver_id")
    if driver.car_id is None:
        return []
    return await trip_repo.list_trips_for_car(db, driver.car_id)


@router.get("/{trip_id}", response_model=TripResponse)
async def get_trip(trip_id: uuid.UUID, db: AsyncDbSession) -> Trip:
    return await trip_repo.get_trip(db, trip_id)


@router.post("", response_model=TripResponse, status_code=status.HTTP_201_CREATED)
async def create_trip(
    payload: TripCreate,
    db: AsyncDbSession,
    replicator: Replicator,
    user: User = Depends(require_fleet_manager),
) -> Trip:
    """Schedule a trip; its seats start at the car's capacity."""
    car_repo.check_car_access(user, await car_repo.get_car(db, payload.car_id))
    trip = await trip_repo.create_trip(db, user_id=user.id, **payload.model_dump())
    await db.commit()
    await replicator.replicate(trip)
    return trip


@router.patch("/{trip_id}", response_model=TripResponse)
async def update_trip(
    trip_id: uuid.UUID,
    payload: TripUpdate,
    db: AsyncDbSession,
    replicator: Replicator,
    user: User = Depends(require_fleet_manager),
) -> Trip:
    trip = await trip_repo.get_trip(db, trip_id)
    car_repo.check_car_access(user, await car_repo.get_car(db, trip.car_id))
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("car_id") is not None:
        car_repo.check_car_access(user, await car_repo.get_car(db, changes["car_id"]))

    trip = await trip_repo.update_trip(db, trip, changes)
    await db.commit()
    await replicator.replicate(trip)
    return trip


@router.delete("/{trip_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_trip(
    trip_id: uuid.UUID,
    db: AsyncDbSession,
    replicator: Replicator,
    user: User = Depends(require_fleet_manager),
) -> Response:
    trip = await trip_repo.get_trip(db, trip_id)
    car_repo.check_car_access(user, await car_repo.get_car(db, trip.car_id))
    await trip_repo.delete_trip(db, trip)
    await db.commit()
    await replicator.remove(trip_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
