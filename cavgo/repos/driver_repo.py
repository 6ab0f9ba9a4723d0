"""
Repository functions for drivers.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ConflictError, UnauthorizedError, ValidationError
from cavgo.core.security import hash_password, verify_password
from cavgo.db.models import Company, Driver
from cavgo.db.validators import normalize_email
from cavgo.domain.enums import DriverType
from cavgo.repos.common import apply_changes, delete_entity, flush_or_conflict, get_or_404

logger = logging.getLogger(__name__)


async def get_driver(db: AsyncSession, driver_id: Any) -> Driver:
    return await get_or_404(db, Driver, driver_id, label="Driver", id_field="driver_id")


async def get_driver_by_email(db: AsyncSession, email: str) -> Driver | None:
    result = await db.execute(select(Driver).where(Driver.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def list_drivers(db: AsyncSession) -> list[Driver]:
    result = await db.execute(select(Driver).order_by(Driver.created_at))
    return list(result.scalars().all())


async def _check_company(
    db: AsyncSession, driver_type: DriverType, company_id: uuid.UUID | None
) -> None:
    if driver_type == DriverType.PRIVATE:
        return
    if company_id is None:
        raise ValidationError(
            "Company is required for non-private drivers",
            details={"driver_type": driver_type.value},
        )
    await get_or_404(db, Company, company_id, label="Company", id_field="company_id")


async def create_driver(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    phone_number: str,
    driver_type: DriverType,
    license: str,
    password: str,
    company_id: uuid.UUID | None = None,
) -> Driver:
    await _check_company(db, driver_type, company_id)
    if await get_driver_by_email(db, email) is not None:
        raise ConflictError("Driver already exists", details={"email": normalize_email(email)})

    driver = Driver(
        name=name,
        email=email,
        phone_number=phone_number,
        driver_type=driver_type,
        license=license,
        password_hash=hash_password(password),
        company_id=company_id if driver_type == DriverType.COMPANY else None,
    )
    db.add(driver)
    await flush_or_conflict(db, "Driver already exists", email=driver.email)
    logger.info("Registered driver %s (%s)", driver.id, driver.driver_type.value)
    return driver


async def authenticate_driver(db: AsyncSession, *, email: str, password: str) -> Driver:
    driver = await get_driver_by_email(db, email)
    if driver is None or not verify_password(password, driver.password_hash):
        raise UnauthorizedError("Invalid email or password")
    return driver


async def update_driver(db: AsyncSession, driver: Driver, changes: dict[str, Any]) -> Driver:
    changes = dict(changes)
    password = changes.pop("password", None)
    if password:
        changes["password_hash"] = hash_password(password)

    driver_type = changes.get("driver_type", driver.driver_type)
    company_id = changes.get("company_id", driver.company_id)
    if "driver_type" in changes or "company_id" in changes:
        await _check_company(db, driver_type, company_id)
        if driver_type == DriverType.PRIVATE:
            changes["company_id"] = None

    apply_changes(driver, changes)
    await flush_or_conflict(db, "Driver already exists", email=driver.email)
    logger.info("Updated driver %s", driver.id)
    return driver


async def delete_driver(db: AsyncSession, driver_id: Any) -> None:
    driver = await get_driver(db, driver_id)
    await delete_entity(db, driver)
    logger.info("Deleted driver %s", driver_id)
