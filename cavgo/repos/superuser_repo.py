"""
Repository functions for platform super users.
"""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.errors import ConflictError, ForbiddenError, UnauthorizedError
from cavgo.core.security import hash_password, verify_password
from cavgo.db.models import SuperUser
from cavgo.db.validators import normalize_email
from cavgo.domain.enums import AccountStatus
from cavgo.repos.common import apply_changes, delete_entity, flush_or_conflict, get_or_404

logger = logging.getLogger(__name__)


async def get_superuser(db: AsyncSession, superuser_id: Any) -> SuperUser:
    return await get_or_404(db, SuperUser, superuser_id, label="Super user", id_field="superuser_id")


async def get_superuser_by_email(db: AsyncSession, email: str) -> SuperUser | None:
    result = await db.execute(select(SuperUser).where(SuperUser.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def list_superusers(db: AsyncSession) -> list[SuperUser]:
    result = await db.execute(select(SuperUser).order_by(SuperUser.created_at))
    return list(result.scalars().all())


async def create_superuser(
    db: AsyncSession,
    *,
    first_name: str,
    last_name: str,
    email: str,
    phone_number: str,
    password: str,
) -> SuperUser:
    if await get_superuser_by_email(db, email) is not None:
        raise ConflictError("Super user already exists", details={"email": normalize_email(email)})

    superuser = SuperUser(
        first_name=first_name,
        last_name=last_name,
        email=email,
        phone_number=phone_number,
        password_hash=hash_password(password),
        status=AccountStatus.ACTIVE,
    )
    db.add(superuser)
    await flush_or_conflict(db, "Super user already exists", email=superuser.email)
    logger.info("Registered super user %s", superuser.id)
    return superuser


async def authenticate_superuser(db: AsyncSession, *, email: str, password: str) -> SuperUser:
    superuser = await get_superuser_by_email(db, email)
    if superuser is None or not verify_password(password, superuser.password_hash):
        raise UnauthorizedError("Invalid email or password")
    if superuser.status != AccountStatus.ACTIVE:
        raise ForbiddenError("Super user is inactive")
    return superuser


async def update_superuser(db: AsyncSession, superuser: SuperUser, changes: dict[str, Any]) -> SuperUser:
    changes = dict(changes)
    password = changes.pop("password", None)
    if password:
        changes["password_hash"] = hash_password(password)
    apply_changes(superuser, changes)
    await flush_or_conflict(db, "Super user already exists", email=superuser.email)
    logger.info("Updated super user %s", superuser.id)
    return superuser


async def delete_superuser(db: AsyncSession, superuser_id: Any) -> None:
    superuser = await get_superuser(db, superuser_id)
    await delete_entity(db, superuser)
    logger.info("Deleted super user %s", superuser_id)
