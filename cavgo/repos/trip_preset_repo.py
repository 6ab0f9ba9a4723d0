"""
Repository functions for trip presets (reusable route + stop point templates).
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ConflictError, ForbiddenError, ValidationError
from cavgo.db.models import Location, Route, TripPreset, User
from cavgo.db.validators import to_jsonable
from cavgo.domain.enums import UserType
from cavgo.repos.common import (
    apply_changes,
    delete_entity,
    ensure_exists,
    flush_or_conflict,
    get_or_404,
)

logger = logging.getLogger(__name__)

DUPLICATE_PRESET_MSG = "A preset with the same data already exists for this company"


def check_preset_access(user: User, preset: TripPreset) -> None:
    if user.user_type == UserType.ADMIN:
        return
    if user.company_id is not None and preset.company_id == user.company_id:
        return
    raise ForbiddenError("Permission denied", details={"preset_id": str(preset.id)})


async def _normalize_stop_points(
    db: AsyncSession, stop_points: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    await ensure_exists(
        db,
        Location,
        [point["location_id"] for point in stop_points],
        label="Stop point location",
        id_field="location_id",
    )
    return [
        to_jsonable({"location_id": point["location_id"], "price": point.get("price", 0)})
        for point in stop_points
    ]


async def list_presets(db: AsyncSession, *, company_id: uuid.UUID | None) -> list[TripPreset]:
    stmt = select(TripPreset).order_by(TripPreset.preset_name)
    if company_id is None:
        stmt = stmt.where(TripPreset.company_id.is_(None))
    else:
        stmt = stmt.where(TripPreset.company_id == company_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_all_presets(db: AsyncSession) -> list[TripPreset]:
    result = await db.execute(select(TripPreset).order_by(TripPreset.preset_name))
    return list(result.scalars().all())


async def get_preset(db: AsyncSession, preset_id: Any) -> TripPreset:
    return await get_or_404(db, TripPreset, preset_id, label="Trip preset", id_field="preset_id")


async def create_preset(
    db: AsyncSession,
    *,
    creator: User,
    route_id: uuid.UUID,
    preset_name: str,
    reverse_route: bool = False,
    stop_points: list[dict[str, Any]] | None = None,
) -> TripPreset:
    """Create a preset owned by the creator's company.

    Raises:
        ConflictError: If the company already has a preset with the same
            route, direction and stop points
    """
    if creator.user_type == UserType.COMPANY and creator.company_id is None:
        raise ValidationError("Company user has no company")
    await get_or_404(db, Route, route_id, label="Route", id_field="route_id")
    normalized = await _normalize_stop_points(db, stop_points or [])

    stmt = select(TripPreset).where(
        TripPreset.route_id == route_id,
        TripPreset.reverse_route == reverse_route,
        TripPreset.company_id.is_(None)
        if creator.company_id is None
        else TripPreset.company_id == creator.company_id,
    )
    result = await db.execute(stmt)
    if any(existing.stop_points == normalized for existing in result.scalars().all()):
        raise ConflictError(DUPLICATE_PRESET_MSG, details={"route_id": str(route_id)})

    preset = TripPreset(
        route_id=route_id,
        preset_name=preset_name,
        reverse_route=reverse_route,
        stop_points=normalized,
        user_id=creator.id,
        company_id=creator.company_id,
    )
    db.add(preset)
    await flush_or_conflict(db, "Preset name already in use", preset_name=preset_name)
    logger.info("Created trip preset %s (%s)", preset.id, preset.preset_name)
    return preset


async def update_preset(db: AsyncSession, preset: TripPreset, changes: dict[str, Any]) -> TripPreset:
    changes = dict(changes)
    if changes.get("route_id") is not None:
        await get_or_404(db, Route, changes["route_id"], label="Route", id_field="route_id")
    if changes.get("stop_points") is not None:
        changes["stop_points"] = await _normalize_stop_points(db, changes["stop_points"])

    apply_changes(preset, changes)
    await flush_or_conflict(db, "Preset name already in use", preset_name=preset.preset_name)
    logger.info("Updated trip preset %s", preset.id)
    return preset


async def delete_preset(db: AsyncSession, preset: TripPreset) -> None:
    await delete_entity(db, preset)
    logger.info("Deleted trip preset %s", preset.id)
