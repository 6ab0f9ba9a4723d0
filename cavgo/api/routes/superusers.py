"""
FastAPI routes for platform super users and token refresh.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.staff import (
    AccessTokenResponse,
    RefreshRequest,
    SuperUserAuthResponse,
    SuperUserCreate,
    SuperUserResponse,
    SuperUserUpdate,
)
from cavgo.api.schemas.users import LoginRequest
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.errors import UnauthorizedError
from cavgo.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    require_superuser,
)
from cavgo.db.models import SuperUser
from cavgo.domain.enums import AccountStatus, PrincipalKind
from cavgo.repos import superuser_repo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["superusers"])


@router.post(
    "/superusers/register",
    response_model=SuperUserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_superuser(payload: SuperUserCreate, db: AsyncDbSession) -> SuperUser:
    superuser = await superuser_repo.create_superuser(db, **payload.model_dump())
    await db.commit()
    return superuser


@router.post("/superusers/login", response_model=SuperUserAuthResponse)
async def login_superuser(payload: LoginRequest, db: AsyncDbSession) -> SuperUserAuthResponse:
    """Log a super user in, returning an access token and a refresh token."""
    superuser = await superuser_repo.authenticate_superuser(
        db, email=payload.email, password=payload.password
    )
    return SuperUserAuthResponse(
        superuser=SuperUserResponse.model_validate(superuser),
        access_token=create_access_token(superuser.id, PrincipalKind.SUPERUSER),
        refresh_token=create_refresh_token(superuser.id),
    )


@router.post("/auth/refresh", response_model=AccessTokenResponse)
async def refresh_access_token(payload: RefreshRequest, db: AsyncDbSession) -> AccessTokenResponse:
    """Exchange a super-user refresh token for a new access token."""
    claims = decode_token(payload.refresh_token, refresh=True)
    superuser = await db.get(SuperUser, uuid.UUID(str(claims["id"])))
    if superuser is None or superuser.status != AccountStatus.ACTIVE:
        raise UnauthorizedError("Invalid refresh token")
    return AccessTokenResponse(access_token=create_access_token(superuser.id, PrincipalKind.SUPERUSER))


@router.get("/superusers", response_model=list[SuperUserResponse])
async def list_superusers(
    db: AsyncDbSession, caller: SuperUser = Depends(require_superuser())
) -> list[SuperUser]:
    return await superuser_repo.list_superusers(db)


@router.get("/superusers/{superuser_id}", response_model=SuperUserResponse)
async def get_superuser(
    superuser_id: uuid.UUID,
    db: AsyncDbSession,
    caller: SuperUser = Depends(require_superuser()),
) -> SuperUser:
    return await superuser_repo.get_superuser(db, superuser_id)


@router.patch("/superusers/{superuser_id}", response_model=SuperUserResponse)
async def update_superuser(
    superuser_id: uuid.UUID,
    payload: SuperUserUpdate,
    db: AsyncDbSession,
    caller: SuperUser = Depends(require_superuser()),
) -> SuperUser:
    superuser = await superuser_repo.get_superuser(db, superuser_id)
    superuser = await superuser_repo.update_superuser(
        db, superuser, payload.model_dump(exclude_unset=True)
    )
    await db.commit()
    return superuser


@router.delete("/superusers/{superuser_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_superuser(
    superuser_id: uuid.UUID,
    db: AsyncDbSession,
    caller: SuperUser = Depends(require_superuser()),
) -> Response:
    await superuser_repo.delete_superuser(db, superuser_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
