"""
FastAPI routes for locations and the routes connecting them.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from cavgo.api.schemas.fleet import (
    LocationCreate,
    LocationResponse,
    LocationUpdate,
    RouteCreate,
    RouteResponse,
)
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.security import Principal, require_admin, require_authenticated, require_user_types
from cavgo.db.models import Location, Route, User
from cavgo.domain.enums import LocationType, UserType
from cavgo.repos import location_repo

router = APIRouter(tags=["locations"])

require_fleet_manager = require_user_types(UserType.ADMIN, UserType.COMPANY)


# =============================================================================
# Locations
# =============================================================================


@router.get("/locations", response_model=list[LocationResponse])
async def list_locations(
    db: AsyncDbSession,
    location_type: LocationType | None = Query(None, alias="type"),
    user: User = Depends(require_fleet_manager),
) -> list[Location]:
    return await location_repo.list_locations(db, location_type=location_type)


@router.get("/locations/{location_id}", response_model=LocationResponse)
async def get_location(
    location_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_fleet_manager)
) -> Location:
    return await location_repo.get_location(db, location_id)


@router.post("/locations", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
async def create_location(
    payload: LocationCreate, db: AsyncDbSession, user: User = Depends(require_fleet_manager)
) -> Location:
    location = await location_repo.create_location(db, **payload.model_dump())
    await db.commit()
    return location


@router.patch("/locations/{location_id}", response_model=LocationResponse)
async def update_location(
    location_id: uuid.UUID,
    payload: LocationUpdate,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> Location:
    location = await location_repo.update_location(
        db, location_id, payload.model_dump(exclude_unset=True)
    )
    await db.commit()
    return location


@router.delete("/locations/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_location(
    location_id: uuid.UUID, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> Response:
    await location_repo.delete_location(db, location_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Routes
# =============================================================================


@router.get("/routes", response_model=list[RouteResponse])
async def list_routes(
    db: AsyncDbSession, principal: Principal = Depends(require_authenticated())
) -> list[Route]:
    """All routes; those with a deleted origin or destination are left out."""
    return await location_repo.list_routes(db)


@router.get("/routes/{route_id}", response_model=RouteResponse)
async def get_route(
    route_id: uuid.UUID,
    db: AsyncDbSession,
    principal: Principal = Depends(require_authenticated()),
) -> Route:
    return await location_repo.get_route(db, route_id)


@router.post("/routes", response_model=RouteResponse, status_code=status.HTTP_201_CREATED)
async def create_route(
    payload: RouteCreate, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> Route:
    route = await location_repo.create_route(db, **payload.model_dump())
    await db.commit()
    return route


@router.delete("/routes/{route_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_route(
    route_id: uuid.UUID, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> Response:
    await location_repo.delete_route(db, route_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
