"""
FastAPI routes for drivers. Drivers authenticate as their own principal kind.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.users import (
    DriverAuthResponse,
    DriverRegister,
    DriverResponse,
    DriverUpdate,
    LoginRequest,
)
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.security import create_access_token, require_admin, require_driver
from cavgo.db.models import Driver, User
from cavgo.domain.enums import PrincipalKind
from cavgo.repos import driver_repo

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drivers", tags=["drivers"])


def _auth_response(driver: Driver) -> DriverAuthResponse:
    token = create_access_token(driver.id, PrincipalKind.DRIVER)
    return DriverAuthResponse(driver=DriverResponse.model_validate(driver), token=token)


@router.post("/register", response_model=DriverAuthResponse, status_code=status.HTTP_201_CREATED)
async def register_driver(payload: DriverRegister, db: AsyncDbSession) -> DriverAuthResponse:
    """Register a driver; company drivers must name their company."""
    driver = await driver_repo.create_driver(db, **payload.model_dump())
    await db.commit()
    return _auth_response(driver)


@router.post("/login", response_model=DriverAuthResponse)
async def login_driver(payload: LoginRequest, db: AsyncDbSession) -> DriverAuthResponse:
    driver = await driver_repo.authenticate_driver(db, email=payload.email, password=payload.password)
    logger.info("Driver %s logged in", driver.id)
    return _auth_response(driver)


@router.get("", response_model=list[DriverResponse])
async def list_drivers(db: AsyncDbSession) -> list[Driver]:
    return await driver_repo.list_drivers(db)


@router.get("/me", response_model=DriverResponse)
async def get_me(driver: Driver = Depends(require_driver())) -> Driver:
    return driver


@router.patch("/me", response_model=DriverResponse)
async def update_me(
    payload: DriverUpdate,
    db: AsyncDbSession,
    driver: Driver = Depends(require_driver()),
) -> Driver:
    driver = await driver_repo.update_driver(db, driver, payload.model_dump(exclude_unset=True))
    await db.commit()
    return driver


@router.patch("/{driver_id}", response_model=DriverResponse)
async def update_driver(
    driver_id: uuid.UUID,
    payload: DriverUpdate,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> Driver:
    driver = await driver_repo.get_driver(db, driver_id)
    driver = await driver_repo.update_driver(db, driver, payload.model_dump(exclude_unset=True))
    await db.commit()
    return driver


@router.delete("/{driver_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_driver(
    driver_id: uuid.UUID,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> Response:
    await driver_repo.delete_driver(db, driver_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
