"""
FastAPI routes for passenger schedules.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from cavgo.api.schemas.schedules import ScheduleCreate, ScheduleResponse, ScheduleUpdate
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.errors import ForbiddenError
from cavgo.core.security import require_user
from cavgo.db.models import Schedule, User
from cavgo.repos import schedule_repo

router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.get("", response_model=list[ScheduleResponse])
async def list_schedules(db: AsyncDbSession) -> list[Schedule]:
    return await schedule_repo.list_schedules(db)


@router.get("/user", response_model=list[ScheduleResponse])
async def list_user_schedules(
    db: AsyncDbSession,
    user_id: uuid.UUID | None = Query(None, description="Admins only; defaults to the caller"),
    user: User = Depends(require_user()),
) -> list[Schedule]:
    if user_id is not None and user_id != user.id and not user.is_admin:
        raise ForbiddenError("Permission denied", details={"user_id": str(user_id)})
    return await schedule_repo.list_user_schedules(db, user_id or user.id)


@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(schedule_id: uuid.UUID, db: AsyncDbSession) -> Schedule:
    return await schedule_repo.get_schedule(db, schedule_id)


@router.post("", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    payload: ScheduleCreate, db: AsyncDbSession, user: User = Depends(require_user())
) -> Schedule:
    """Save a planned journey together with the routes that serve it."""
    schedule = await schedule_repo.create_schedule(db, user=user, **payload.model_dump())
    await db.commit()
    return schedule


@router.patch("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: uuid.UUID,
    payload: ScheduleUpdate,
    db: AsyncDbSession,
    user: User = Depends(require_user()),
) -> Schedule:
    schedule = await schedule_repo.get_schedule(db, schedule_id)
    schedule_repo.check_schedule_owner(schedule, user)
    schedule = await schedule_repo.update_schedule(db, schedule, payload.model_dump(exclude_unset=True))
    await db.commit()
    return schedule


@router.delete("/{schedule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_schedule(
    schedule_id: uuid.UUID, db: AsyncDbSession, user: User = Depends(require_user())
) -> Response:
    schedule = await schedule_repo.get_schedule(db, schedule_id)
    schedule_repo.check_schedule_owner(schedule, user)
    await schedule_repo.delete_schedule(db, schedule)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
