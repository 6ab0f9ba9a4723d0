"""
Repository functions for POS machines installed in cars.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ForbiddenError, NotFoundError
from cavgo.core.security import create_access_token
from cavgo.core.timeutils import utcnow
from cavgo.db.models import Car, PosMachine
from cavgo.domain.enums import PosStatus, PrincipalKind
from cavgo.repos.car_repo import get_car_by_plate
from cavgo.repos.common import delete_entity, flush_or_conflict, get_or_404

logger = logging.getLogger(__name__)


async def list_pos_machines(db: AsyncSession) -> list[PosMachine]:
    result = await db.execute(select(PosMachine).order_by(PosMachine.created_at))
    return list(result.scalars().all())


async def get_pos_machine(db: AsyncSession, pos_id: Any) -> PosMachine:
    return await get_or_404(db, PosMachine, pos_id, label="POS machine", id_field="pos_id")


async def get_pos_by_serial(db: AsyncSession, serial_number: str) -> PosMachine:
    result = await db.execute(select(PosMachine).where(PosMachine.serial_number == serial_number))
    pos = result.scalar_one_or_none()
    if pos is None:
        raise NotFoundError("POS machine not found", details={"serial_number": serial_number})
    return pos


async def _car_for_plate(db: AsyncSession, car_plate: str) -> Car:
    car = await get_car_by_plate(db, car_plate)
    if car is None:
        raise NotFoundError("Car not found", details={"car_plate": car_plate})
    return car


async def register_pos_machine(
    db: AsyncSession, *, serial_number: str, car_plate: str, user_id: uuid.UUID | None
) -> PosMachine:
    """Install a POS machine in the car with this plate; it starts active."""
    car = await _car_for_plate(db, car_plate)
    now = utcnow()
    pos = PosMachine(
        serial_number=serial_number,
        status=PosStatus.ACTIVE,
        linked_car_id=car.id,
        assigned_date=now,
        last_activity_date=now,
        user_id=user_id,
    )
    db.add(pos)
    await flush_or_conflict(db, "POS machine already registered", serial_number=serial_number)
    logger.info("Registered POS machine %s in car %s", serial_number, car.plate_number)
    return pos


async def update_pos_machine(
    db: AsyncSession,
    serial_number: str,
    *,
    status: PosStatus | None = None,
    car_plate: str | None = None,
) -> PosMachine:
    pos = await get_pos_by_serial(db, serial_number)
    now = utcnow()
    if status is not None:
        pos.status = status
    if car_plate is not None:
        car = await _car_for_plate(db, car_plate)
        if car.id != pos.linked_car_id:
            pos.linked_car_id = car.id
            pos.assigned_date = now
    pos.last_activity_date = now
    await db.flush()
    logger.info("Updated POS machine %s (status=%s)", serial_number, pos.status.value)
    return pos


async def issue_pos_token(db: AsyncSession, serial_number: str) -> tuple[PosMachine, str]:
    """
    Issue the bearer token a POS device authenticates with.

    Raises:
        ForbiddenError: If the device is not active
    """
    pos = await get_pos_by_serial(db, serial_number)
    if pos.status != PosStatus.ACTIVE:
        raise ForbiddenError(
            "POS machine is inactive",
            details={"serial_number": serial_number, "status": pos.status.value},
        )
    token = create_access_token(pos.id, PrincipalKind.POS)
    pos.last_activity_date = utcnow()
    await db.flush()
    logger.info("Issued token for POS machine %s", serial_number)
    return pos, token


async def delete_pos_machine(db: AsyncSession, pos_id: Any) -> None:
    pos = await get_pos_machine(db, pos_id)
    await delete_entity(db, pos)
    logger.info("Deleted POS machine %s", pos.serial_number)
