"""
Repository functions for trips and their seat inventory.

Seat counts change through single conditional UPDATE statements so two
concurrent bookings can never take the same last seat.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ConflictError, NotFoundError
from cavgo.db.models import Car, Location, Route, Trip, TripStopPoint
from cavgo.domain.enums import TripStatus
from cavgo.repos.common import apply_changes, delete_entity, ensure_exists, get_or_404

logger = logging.getLogger(__name__)


async def get_trip(db: AsyncSession, trip_id: Any) -> Trip:
    return await get_or_404(db, Trip, trip_id, label="Trip", id_field="trip_id")


async def list_trips(db: AsyncSession) -> list[Trip]:
    result = await db.execute(select(Trip).order_by(Trip.boarding_time))
    return list(result.scalars().all())


async def list_trips_for_car(db: AsyncSession, car_id: uuid.UUID) -> list[Trip]:
    result = await db.execute(
        select(Trip).where(Trip.car_id == car_id).order_by(Trip.boarding_time)
    )
    return list(result.scalars().all())


async def _build_stop_points(
    db: AsyncSession, stop_points: list[dict[str, Any]]
) -> list[TripStopPoint]:
    location_ids = [point["location_id"] for point in stop_points]
    await ensure_exists(db, Location, location_ids, label="Stop point location", id_field="location_id")
    return [
        TripStopPoint(location_id=point["location_id"], price=point.get("price", 0), position=index)
        for index, point in enumerate(stop_points)
    ]


async def create_trip(
    db: AsyncSession,
    *,
    route_id: uuid.UUID,
    car_id: uuid.UUID,
    boarding_time: datetime,
    user_id: uuid.UUID | None = None,
    status: TripStatus = TripStatus.SCHEDULED,
    reverse_route: bool = False,
    stop_points: list[dict[str, Any]] | None = None,
) -> Trip:
    """Create a trip; its seat inventory starts at the car's seat count."""
    await get_or_404(db, Route, route_id, label="Route", id_field="route_id")
    car = await get_or_404(db, Car, car_id, label="Car", id_field="car_id")

    trip = Trip(
        route_id=route_id,
        car_id=car.id,
        boarding_time=boarding_time,
        user_id=user_id,
        status=status,
        reverse_route=reverse_route,
        available_seats=car.number_of_seats,
        stop_points=await _build_stop_points(db, stop_points or []),
    )
    db.add(trip)
    await db.flush()
    logger.info("Created trip %s on route %s with %s seats", trip.id, route_id, trip.available_seats)
    return trip


async def update_trip(db: AsyncSession, trip: Trip, changes: dict[str, Any]) -> Trip:
    """Partial update. Changing the car resets seats to the new car's capacity."""
    changes = dict(changes)
    stop_points = changes.pop("stop_points", None)

    if changes.get("route_id") is not None:
        await get_or_404(db, Route, changes["route_id"], label="Route", id_field="route_id")
    if changes.get("car_id") is not None and changes["car_id"] != trip.car_id:
        car = await get_or_404(db, Car, changes["car_id"], label="Car", id_field="car_id")
        changes["available_seats"] = car.number_of_seats

    apply_changes(trip, changes)
    if stop_points is not None:
        trip.stop_points = await _build_stop_points(db, stop_points)
    await db.flush()
    logger.info("Updated trip %s", trip.id)
    return trip


async def delete_trip(db: AsyncSession, trip: Trip) -> None:
    await delete_entity(db, trip)
    logger.info("Deleted trip %s", trip.id)


async def reserve_seats(db: AsyncSession, trip_id: uuid.UUID, count: int) -> Trip:
    """
    Take `count` seats from a trip.

    Raises:
        NotFoundError: If the trip does not exist
        ConflictError: If fewer than `count` seats are left
    """
    result = await db.execute(
        update(Trip)
        .where(Trip.id == trip_id, Trip.available_seats >= count)
        .values(available_seats=Trip.available_seats - count)
        .execution_options(synchronize_session=False)
    )
    trip = await db.get(Trip, trip_id, populate_existing=True)
    if trip is None:
        raise NotFoundError("Trip not found", details={"trip_id": str(trip_id)})
    if result.rowcount == 0:
        raise ConflictError(
            "Not enough seats available",
            details={
                "trip_id": str(trip_id),
                "requested": count,
                "available": trip.available_seats,
            },
        )
    return trip


async def release_seats(db: AsyncSession, trip_id: uuid.UUID, count: int) -> Trip | None:
    """Give `count` seats back to a trip. Returns None if the trip is gone."""
    await db.execute(
        update(Trip)
        .where(Trip.id == trip_id)
        .values(available_seats=Trip.available_seats + count)
        .execution_options(synchronize_session=False)
    )
    trip = await db.get(Trip, trip_id, populate_existing=True)
    if trip is not None:
        logger.info("Released %s seat(s) on trip %s", count, trip_id)
    return trip
