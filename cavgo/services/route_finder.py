"""
Dedicated-route lookup for passenger schedules.

Given an origin and a destination location, find the routes a passenger can
use, and record for each end whether it matched a route endpoint or one of a
trip's stop points.
"""

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.db.models import Route, Trip, TripStopPoint
from cavgo.domain.enums import MatchType

logger = logging.getLogger(__name__)


@dataclass
class RouteMatch:
    routes: list[uuid.UUID] = field(default_factory=list)
    origin_type: MatchType = MatchType.NONE
    destination_type: MatchType = MatchType.NONE

    def swapped(self) -> "RouteMatch":
        """The same match described from the opposite direction."""
        return RouteMatch(
            routes=list(self.routes),
            origin_type=self.destination_type,
            destination_type=self.origin_type,
        )


def _dedupe(ids: list[uuid.UUID]) -> list[uuid.UUID]:
    return list(dict.fromkeys(ids))


async def _route_ids(db: AsyncSession, *conditions) -> list[uuid.UUID]:
    result = await db.execute(select(Route.id).where(*conditions).order_by(Route.created_at))
    return list(result.scalars().all())


async def _routes_of_trips_stopping_at(db: AsyncSession, location_id: uuid.UUID) -> list[uuid.UUID]:
    stmt = (
        select(Trip.route_id)
        .join(TripStopPoint, TripStopPoint.trip_id == Trip.id)
        .where(TripStopPoint.location_id == location_id)
        .order_by(Trip.created_at)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _search(
    db: AsyncSession, origin_id: uuid.UUID, destination_id: uuid.UUID
) -> RouteMatch:
    exact = await _route_ids(db, Route.origin_id == origin_id, Route.destination_id == destination_id)
    if exact:
        return RouteMatch(exact, MatchType.ROUTE, MatchType.ROUTE)

    match = RouteMatch()

    from_origin = await _route_ids(db, Route.origin_id == origin_id)
    if from_origin:
        match.routes.extend(from_origin)
        match.origin_type = MatchType.ROUTE
        via_destination = await _routes_of_trips_stopping_at(db, destination_id)
        if via_destination:
            match.routes.extend(via_destination)
            match.destination_type = MatchType.STOP_POINT
    else:
        to_destination = await _route_ids(db, Route.destination_id == destination_id)
        if to_destination:
            match.routes.extend(to_destination)
            match.destination_type = MatchType.ROUTE
            via_origin = await _routes_of_trips_stopping_at(db, origin_id)
            if via_origin:
                match.routes[:0] = via_origin
                match.origin_type = MatchType.STOP_POINT

    if not match.routes:
        via_origin = await _routes_of_trips_stopping_at(db, origin_id)
        via_destination = await _routes_of_trips_stopping_at(db, destination_id)
        if via_origin and via_destination:
            match.routes.extend(via_origin)
            match.routes.extend(via_destination)
        if via_origin:
            match.origin_type = MatchType.STOP_POINT
        if via_destination:
            match.destination_type = MatchType.STOP_POINT

    match.routes = _dedupe(match.routes)
    return match


async def find_dedicated_route(
    db: AsyncSession, origin_id: uuid.UUID, destination_id: uuid.UUID
) -> RouteMatch:
    """
    Find routes serving a trip from `origin_id` to `destination_id`.

    Search order:
    1. Routes with exactly this origin and destination
    2. Routes leaving the origin, plus routes of trips stopping at the destination
    3. Routes reaching the destination, preceded by routes of trips stopping at the origin
    4. Routes of trips stopping at the origin and of trips stopping at the destination

    When nothing matches, the search is repeated once in the opposite
    direction; its match types are swapped back so they still describe the
    caller's origin and destination.
    """
    match = await _search(db, origin_id, destination_id)
    if match.routes:
        return match

    reverse = await _search(db, destination_id, origin_id)
    if reverse.routes:
        logger.debug("Route match for %s -> %s found in reverse", origin_id, destination_id)
        return reverse.swapped()

    return match
