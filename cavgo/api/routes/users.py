"""
FastAPI routes for passenger-side user accounts and companies.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, Response, status

from cavgo.api.schemas.users import (
    CompanyCreate,
    CompanyResponse,
    CompanyUpdate,
    LoginRequest,
    UserAdminUpdate,
    UserAuthResponse,
    UserRegister,
    UserResponse,
    UserSelfUpdate,
)
from cavgo.core.dependencies import AsyncDbSession
from cavgo.core.errors import ForbiddenError
from cavgo.core.security import create_access_token, require_admin, require_user
from cavgo.db.models import Company, User
from cavgo.domain.enums import PrincipalKind
from cavgo.repos import card_repo, company_repo, user_repo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])


def _auth_response(user: User) -> UserAuthResponse:
    token = create_access_token(user.id, PrincipalKind.USER)
    return UserAuthResponse(user=UserResponse.model_validate(user), token=token)


# ============================================================================
# Users
# ============================================================================


@router.post(
    "/users/register",
    response_model=UserAuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_user(payload: UserRegister, db: AsyncDbSession) -> UserAuthResponse:
    """Create a customer account and return it with an access token."""
    user = await user_repo.create_user(db, **payload.model_dump())
    await db.commit()
    return _auth_response(user)


@router.post("/users/login", response_model=UserAuthResponse)
async def login_user(payload: LoginRequest, db: AsyncDbSession) -> UserAuthResponse:
    user = await user_repo.authenticate_user(db, email=payload.email, password=payload.password)
    logger.info("User %s logged in", user.id)
    return _auth_response(user)


@router.get("/users", response_model=list[UserResponse])
async def list_users(db: AsyncDbSession, admin: User = Depends(require_admin())) -> list[User]:
    return await user_repo.list_users(db)


@router.get("/users/me", response_model=UserResponse)
async def get_me(user: User = Depends(require_user())) -> User:
    return user


@router.patch("/users/me", response_model=UserResponse)
async def update_me(
    payload: UserSelfUpdate,
    db: AsyncDbSession,
    user: User = Depends(require_user()),
) -> User:
    """Update the caller's own profile. The account type cannot be changed here."""
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("default_card_id") is not None:
        card = await card_repo.get_card(db, changes["default_card_id"])
        if card.user_id != user.id:
            raise ForbiddenError("Card belongs to another user", details={"card_id": str(card.id)})
    user = await user_repo.update_user(db, user, changes)
    await db.commit()
    return user


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: uuid.UUID,
    db: AsyncDbSession,
    caller: User = Depends(require_user()),
) -> User:
    if caller.id != user_id and not caller.is_admin:
        raise ForbiddenError("Permission denied", details={"user_id": str(user_id)})
    return await user_repo.get_user(db, user_id)


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: uuid.UUID,
    payload: UserAdminUpdate,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> User:
    """Admin update, including the account type and company link."""
    changes = payload.model_dump(exclude_unset=True)
    user_type = changes.pop("user_type", None)
    company_id = changes.pop("company_id", None)

    user = await user_repo.get_user(db, user_id)
    if changes:
        user = await user_repo.update_user(db, user, changes)
    if user_type is not None or company_id is not None:
        user = await user_repo.set_user_role(db, user, user_type=user_type, company_id=company_id)
    await db.commit()
    logger.info("Admin %s updated user %s", admin.id, user.id)
    return user


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: uuid.UUID,
    db: AsyncDbSession,
    admin: User = Depends(require_admin()),
) -> Response:
    await user_repo.delete_user(db, user_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Companies
# ============================================================================


@router.get("/companies", response_model=list[CompanyResponse])
async def list_companies(db: AsyncDbSession) -> list[Company]:
    return await company_repo.list_companies(db)


@router.get("/companies/{company_id}", response_model=CompanyResponse)
async def get_company(company_id: uuid.UUID, db: AsyncDbSession) -> Company:
    return await company_repo.get_company(db, company_id)


@router.post("/companies", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(payload: CompanyCreate, db: AsyncDbSession) -> Company:
    company = await company_repo.create_company(db, **payload.model_dump())
    await db.commit()
    return company


@router.patch("/companies/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: uuid.UUID, payload: CompanyUpdate, db: AsyncDbSession
) -> Company:
    company = await company_repo.update_company(db, company_id, payload.model_dump(exclude_unset=True))
    await db.commit()
    return company


@router.delete("/companies/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(company_id: uuid.UUID, db: AsyncDbSession) -> Response:
    await company_repo.delete_company(db, company_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
