"""
Repository functions for cars and their driver assignment.

A driver drives at most one car. `Car.driver_id` and `Driver.car_id` are
kept in sync whenever a driver is (re)assigned.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ForbiddenError, ValidationError
from cavgo.db.models import Car, Company, Driver, User
from cavgo.domain.enums import UserType
from cavgo.repos.common import apply_changes, delete_entity, flush_or_conflict, get_or_404

logger = logging.getLogger(__name__)


def check_car_access(user: User, car: Car) -> None:
    """Company users may only touch their own company's cars."""
    if user.user_type == UserType.ADMIN:
        return
    if (
        user.user_type == UserType.COMPANY
        and user.company_id is not None
        and car.owner_company_id == user.company_id
    ):
        return
    raise ForbiddenError("Permission denied", details={"car_id": str(car.id)})


async def get_car(db: AsyncSession, car_id: Any) -> Car:
    return await get_or_404(db, Car, car_id, label="Car", id_field="car_id")


async def get_car_by_plate(db: AsyncSession, plate_number: str) -> Car | None:
    result = await db.execute(
        select(Car).where(Car.plate_number == plate_number.strip().upper())
    )
    return result.scalar_one_or_none()


async def list_cars(db: AsyncSession, *, company_id: uuid.UUID | None = None) -> list[Car]:
    stmt = select(Car).order_by(Car.created_at)
    if company_id is not None:
        stmt = stmt.where(Car.owner_company_id == company_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def assign_driver(db: AsyncSession, car: Car, driver_id: uuid.UUID) -> Car:
    """Put a driver on `car`, taking them off any other car first."""
    driver = await get_or_404(db, Driver, driver_id, label="Driver", id_field="driver_id")

    await db.execute(
        update(Car)
        .where(Car.driver_id == driver.id, Car.id != car.id)
        .values(driver_id=None)
        .execution_options(synchronize_session="fetch")
    )
    if car.driver_id is not None and car.driver_id != driver.id:
        await db.execute(
            update(Driver)
            .where(Driver.id == car.driver_id)
            .values(car_id=None)
            .execution_options(synchronize_session="fetch")
        )

    car.driver_id = driver.id
    driver.car_id = car.id
    await db.flush()
    logger.info("Assigned driver %s to car %s", driver.id, car.id)
    return car


async def create_car(
    db: AsyncSession,
    *,
    creator: User,
    plate_number: str,
    number_of_seats: int,
    owner_company_id: uuid.UUID | None = None,
    private_owner: str | None = None,
    driver_id: uuid.UUID | None = None,
    is_occupied: bool = False,
) -> Car:
    """Register a car.

    Admins must name an owner company or a private owner; a company user's
    company always owns the cars it registers.
    """
    if creator.user_type == UserType.COMPANY:
        owner_company_id = creator.company_id
        private_owner = None
        if owner_company_id is None:
            raise ValidationError("Company user has no company")
    elif owner_company_id is None and not private_owner:
        raise ValidationError("Either owner_company_id or private_owner must be provided")

    if owner_company_id is not None:
        await get_or_404(db, Company, owner_company_id, label="Owner company", id_field="company_id")

    car = Car(
        plate_number=plate_number,
        number_of_seats=number_of_seats,
        owner_company_id=owner_company_id,
        private_owner=None if owner_company_id else private_owner,
        is_occupied=is_occupied,
        user_id=creator.id,
    )
    db.add(car)
    await flush_or_conflict(db, "Plate number already registered", plate_number=car.plate_number)

    if driver_id is not None:
        await assign_driver(db, car, driver_id)

    logger.info("Registered car %s (%s)", car.id, car.plate_number)
    return car


async def update_car(db: AsyncSession, car: Car, changes: dict[str, Any]) -> Car:
    changes = dict(changes)
    driver_id = changes.pop("driver_id", None)

    if changes.get("owner_company_id") is not None:
        await get_or_404(
            db, Company, changes["owner_company_id"], label="Owner company", id_field="company_id"
        )

    apply_changes(car, changes)
    await flush_or_conflict(db, "Plate number already registered", plate_number=car.plate_number)

    if driver_id is not None:
        await assign_driver(db, car, driver_id)

    logger.info("Updated car %s", car.id)
    return car


async def delete_car(db: AsyncSession, car: Car) -> None:
    if car.driver_id is not None:
        await db.execute(update(Driver).where(Driver.id == car.driver_id).values(car_id=None))
    await delete_entity(db, car)
    logger.info("Deleted car %s", car.id)
