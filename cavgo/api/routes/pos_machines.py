"""
FastAPI routes for POS machines and the device tokens they authenticate with.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.staff import (
    PosMachineCreate,
    PosMachineResponse,
    PosMachineUpdate,
    PosTokenResponse,
)
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.security import require_admin, require_pos, require_user
from cavgo.db.models import PosMachine, User
from cavgo.repos import pos_repo

router = APIRouter(prefix="/pos-machines", tags=["pos-machines"])


@router.get("", response_model=list[PosMachineResponse])
async def list_pos_machines(
    db: AsyncDbSession, admin: User = Depends(require_admin())
) -> list[PosMachine]:
    return await pos_repo.list_pos_machines(db)


@router.get("/me", response_model=PosMachineResponse)
async def get_own_pos_machine(pos: PosMachine = Depends(require_pos())) -> PosMachine:
    """The calling device's own record, for checking its status and car."""
    return pos


@router.get("/{pos_id}", response_model=PosMachineResponse)
async def get_pos_machine(
    pos_id: uuid.UUID, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> PosMachine:
    return await pos_repo.get_pos_machine(db, pos_id)


@router.post("", response_model=PosMachineResponse, status_code=status.HTTP_201_CREATED)
async def register_pos_machine(
    payload: PosMachineCreate, db: AsyncDbSession, user: User = Depends(require_user())
) -> PosMachine:
    """Install a POS machine in the car with the given plate."""
    pos = await pos_repo.register_pos_machine(
        db, serial_number=payload.serial_number, car_plate=payload.car_plate, user_id=user.id
    )
    await db.commit()
    return pos


@router.patch("/{serial_number}", response_model=PosMachineResponse)
async def update_pos_machine(
    serial_number: str,
    payload: PosMachineUpdate,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> PosMachine:
    pos = await pos_repo.update_pos_machine(
        db, serial_number, status=payload.status, car_plate=payload.car_plate
    )
    await db.commit()
    return pos


@router.post("/{serial_number}/token", response_model=PosTokenResponse)
async def issue_pos_token(
    serial_number: str, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> PosTokenResponse:
    pos, token = await pos_repo.issue_pos_token(db, serial_number)
    await db.commit()
    return PosTokenResponse(pos=PosMachineResponse.model_validate(pos), token=token)


@router.delete("/{pos_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pos_machine(
    pos_id: uuid.UUID, db: AsyncDbSession, admin: User = Depends(require_admin())
) -> Response:
    await pos_repo.delete_pos_machine(db, pos_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
