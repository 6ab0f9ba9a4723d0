"""
Repository functions for passenger schedules.

A schedule stores the routes matched for its origin and destination at the
time it was created or last moved.
"""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ForbiddenError
from cavgo.db.models import Location, Schedule, User
from cavgo.repos.common import apply_changes, delete_entity, ensure_exists, get_or_404
from cavgo.services.route_finder import RouteMatch, find_dedicated_route

logger = logging.getLogger(__name__)


def check_schedule_owner(schedule: Schedule, user: User) -> None:
    if schedule.user_id != user.id:
        raise ForbiddenError("Permission denied", details={"schedule_id": str(schedule.id)})


def _apply_match(schedule: Schedule, match: RouteMatch) -> None:
    schedule.matched_route_ids = [str(route_id) for route_id in match.routes]
    schedule.origin_type = match.origin_type
    schedule.destination_type = match.destination_type


async def list_schedules(db: AsyncSession) -> list[Schedule]:
    result = await db.execute(select(Schedule).order_by(Schedule.time))
    return list(result.scalars().all())


async def get_schedule(db: AsyncSession, schedule_id: Any) -> Schedule:
    return await get_or_404(db, Schedule, schedule_id, label="Schedule", id_field="schedule_id")


async def list_user_schedules(db: AsyncSession, user_id: uuid.UUID) -> list[Schedule]:
    result = await db.execute(
        select(Schedule).where(Schedule.user_id == user_id).order_by(Schedule.time)
    )
    return list(result.scalars().all())


async def create_schedule(
    db: AsyncSession,
    *,
    user: User,
    origin_id: uuid.UUID,
    destination_id: uuid.UUID,
    time: datetime,
) -> Schedule:
    """Create a schedule and match it against the route network."""
    await ensure_exists(db, Location, [origin_id, destination_id], label="Location", id_field="location_id")
    match = await find_dedicated_route(db, origin_id, destination_id)

    schedule = Schedule(
        user_id=user.id,
        origin_id=origin_id,
        destination_id=destination_id,
        time=time,
    )
    _apply_match(schedule, match)
    db.add(schedule)
    await db.flush()
    logger.info(
        "Created schedule %s for user %s (%d route(s), %s/%s)",
        schedule.id,
        user.id,
        len(match.routes),
        match.origin_type.value,
        match.destination_type.value,
    )
    return schedule


async def update_schedule(db: AsyncSession, schedule: Schedule, changes: dict[str, Any]) -> Schedule:
    """Apply changes; moving either endpoint re-runs the route match."""
    moved = any(
        key in changes and changes[key] != getattr(schedule, key)
        for key in ("origin_id", "destination_id")
    )
    apply_changes(schedule, changes)
    if moved:
        await ensure_exists(
            db,
            Location,
            [schedule.origin_id, schedule.destination_id],
            label="Location",
            id_field="location_id",
        )
        _apply_match(schedule, await find_dedicated_route(db, schedule.origin_id, schedule.destination_id))
    await db.flush()
    logger.info("Updated schedule %s", schedule.id)
    return schedule


async def delete_schedule(db: AsyncSession, schedule: Schedule) -> None:
    await delete_entity(db, schedule)
    logger.info("Deleted schedule %s", schedule.id)
