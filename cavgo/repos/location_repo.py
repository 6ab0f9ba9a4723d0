"""
Repository functions for locations and routes.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.db.models import Location, Route
from cavgo.domain.enums import LocationType
from cavgo.repos.common import apply_changes, delete_entity, get_or_404

logger = logging.getLogger(__name__)


async def list_locations(
    db: AsyncSession, *, location_type: LocationType | None = None
) -> list[Location]:
    stmt = select(Location).order_by(Location.name)
    if location_type is not None:
        stmt = stmt.where(Location.location_type == location_type)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_location(db: AsyncSession, location_id: Any) -> Location:
    return await get_or_404(db, Location, location_id, label="Location", id_field="location_id")


async def create_location(
    db: AsyncSession,
    *,
    name: str,
    lat: float,
    lng: float,
    location_type: LocationType = LocationType.OTHER,
    address: str | None = None,
    google_place_id: str | None = None,
) -> Location:
    location = Location(
        name=name,
        lat=lat,
        lng=lng,
        location_type=location_type,
        address=address,
        google_place_id=google_place_id,
    )
    db.add(location)
    await db.flush()
    logger.info("Created location %s (%s)", location.id, location.name)
    return location


async def update_location(db: AsyncSession, location_id: Any, changes: dict[str, Any]) -> Location:
    location = await get_location(db, location_id)
    apply_changes(location, changes)
    await db.flush()
    return location


async def delete_location(db: AsyncSession, location_id: Any) -> None:
    location = await get_location(db, location_id)
    await delete_entity(db, location)
    logger.info("Deleted location %s", location_id)


# ============================================================================
# Routes
# ============================================================================


async def list_routes(db: AsyncSession) -> list[Route]:
    """Routes whose origin and destination both still exist."""
    stmt = (
        select(Route)
        .where(Route.origin_id.is_not(None), Route.destination_id.is_not(None))
        .order_by(Route.created_at)
    )
    result = await db.execute(stmt)
    return [route for route in result.scalars().all() if route.origin and route.destination]


async def get_route(db: AsyncSession, route_id: Any) -> Route:
    return await get_or_404(db, Route, route_id, label="Route", id_field="route_id")


async def create_route(
    db: AsyncSession,
    *,
    origin_id: uuid.UUID,
    destination_id: uuid.UUID,
    price: int,
    google_maps_route_id: str | None = None,
) -> Route:
    origin = await get_or_404(db, Location, origin_id, label="Origin location", id_field="origin_id")
    destination = await get_or_404(
        db, Location, destination_id, label="Destination location", id_field="destination_id"
    )

    route = Route(
        origin_id=origin.id,
        destination_id=destination.id,
        price=price,
        google_maps_route_id=google_maps_route_id,
    )
    db.add(route)
    await db.flush()
    await db.refresh(route, attribute_names=["origin", "destination"])
    logger.info("Created route %s: %s -> %s", route.id, origin.name, destination.name)
    return route


async def delete_route(db: AsyncSession, route_id: Any) -> None:
    route = await get_route(db, route_id)
    await delete_entity(db, route)
    logger.info("Deleted route %s", route_id)
