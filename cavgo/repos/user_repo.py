"""
Repository functions for passenger-side users.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ConflictError, UnauthorizedError, ValidationError
from cavgo.core.security import hash_password, verify_password
from cavgo.db.models import Company, User
from cavgo.db.validators import normalize_email
from cavgo.domain.enums import UserType
from cavgo.repos.common import apply_changes, delete_entity, flush_or_conflict, get_or_404

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MSG = "Invalid email or password"


async def get_user(db: AsyncSession, user_id: Any) -> User:
    return await get_or_404(db, User, user_id, label="User", id_field="user_id")


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def find_user_by_email_or_phone(
    db: AsyncSession, *, email: str | None, phone_number: str | None
) -> User | None:
    conditions = []
    if email:
        conditions.append(User.email == normalize_email(email))
    if phone_number:
        conditions.append(User.phone_number == phone_number)
    if not conditions:
        return None
    result = await db.execute(select(User).where(or_(*conditions)).limit(1))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at))
    return list(result.scalars().all())


async def create_user(
    db: AsyncSession,
    *,
    first_name: str,
    last_name: str,
    email: str,
    phone_number: str,
    password: str,
    user_type: UserType = UserType.CUSTOMER,
    company_id: uuid.UUID | None = None,
) -> User:
    if await get_user_by_email(db, email) is not None:
        raise ConflictError("Email already registered", details={"email": normalize_email(email)})

    user = User(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone_number=phone_number,
        password_hash=hash_password(password),
        user_type=user_type,
        company_id=company_id,
    )
    db.add(user)
    await flush_or_conflict(db, "Email already registered", email=user.email)
    logger.info("Created user %s (%s)", user.id, user.user_type.value)
    return user


async def authenticate_user(db: AsyncSession, *, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", normalize_email(email))
        raise UnauthorizedError(INVALID_CREDENTIALS_MSG)
    return user


async def update_user(db: AsyncSession, user: User, changes: dict[str, Any]) -> User:
    """Update profile fields; a `password` change is re-hashed."""
    changes = dict(changes)
    password = changes.pop("password", None)
    if password:
        changes["password_hash"] = hash_password(password)
    if "email" in changes and normalize_email(changes["email"]) != user.email:
        if await get_user_by_email(db, changes["email"]) is not None:
            raise ConflictError("Email already registered", details={"email": changes["email"]})

    apply_changes(user, changes)
    await flush_or_conflict(db, "Email already registered", email=user.email)
    logger.info("Updated user %s", user.id)
    return user


async def set_user_role(
    db: AsyncSession,
    user: User,
    *,
    user_type: UserType | None,
    company_id: uuid.UUID | None,
) -> User:
    """Change a user's type and company.

    A company link only survives on company users, and a company user
    must have one.

    Raises:
        ValidationError: If the user would end up a company user without a company
        NotFoundError: If `company_id` names no company
    """
    new_type = user_type if user_type is not None else user.user_type
    if new_type == UserType.COMPANY:
        if company_id is not None:
            await get_or_404(db, Company, company_id, label="Company", id_field="company_id")
        elif user.company_id is None:
            raise ValidationError(
                "Company users must belong to a company", details={"user_id": str(user.id)}
            )
        user.company_id = company_id or user.company_id
    else:
        user.company_id = None
    user.user_type = new_type
    await db.flush()
    logger.info("Set user %s role to %s (company=%s)", user.id, user.user_type.value, user.company_id)
    return user


async def delete_user(db: AsyncSession, user_id: Any) -> None:
    user = await get_user(db, user_id)
    await delete_entity(db, user)
    logger.info("Deleted user %s", user_id)
