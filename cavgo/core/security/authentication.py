"""
Bearer-token authentication against the principal collections.

A token's `id` is looked up in users, drivers, agents, POS machines and super
users, in that order; the first hit wins. Agents, POS machines and super
users must be active. Any failure leaves the request anonymous so that
public endpoints keep working; guards in `permissions` reject anonymous
callers where an identity is required.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from cavgo.core.db import get_async_db_session
from cavgo.core.errors import UnauthorizedError
from cavgo.core.observability import set_principal
from cavgo.db.models import Agent, Driver, PosMachine, SuperUser, User
from cavgo.domain.enums import AccountStatus, PosStatus, PrincipalKind

from .tokens import decode_token

logger = logging.getLogger(__name__)

_optional_security = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    """Identities resolved for the current request; all empty when anonymous."""

    user: User | None = None
    driver: Driver | None = None
    agent: Agent | None = None
    pos: PosMachine | None = None
    superuser: SuperUser | None = None

    @property
    def kind(self) -> PrincipalKind | None:
        for kind, value in self._slots():
            if value is not None:
                return kind
        return None

    @property
    def id(self) -> uuid.UUID | None:
        for _, value in self._slots():
            if value is not None:
                return value.id
        return None

    @property
    def is_anonymous(self) -> bool:
        return self.kind is None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.is_admin

    def _slots(self) -> list[tuple[PrincipalKind, Any]]:
        return [
            (PrincipalKind.USER, self.user),
            (PrincipalKind.DRIVER, self.driver),
            (PrincipalKind.AGENT, self.agent),
            (PrincipalKind.POS, self.pos),
            (PrincipalKind.SUPERUSER, self.superuser),
        ]


# Lookup order matters: the first collection containing the id wins.
_LOOKUP_SEQUENCE: list[tuple[PrincipalKind, type, Any, str | None]] = [
    (PrincipalKind.USER, User, None, None),
    (PrincipalKind.DRIVER, Driver, None, None),
    (PrincipalKind.AGENT, Agent, AccountStatus.ACTIVE, "Agent is inactive"),
    (PrincipalKind.POS, PosMachine, PosStatus.ACTIVE, "POS machine is inactive"),
    (PrincipalKind.SUPERUSER, SuperUser, AccountStatus.ACTIVE, "Super user is inactive"),
]


async def resolve_principal(db: AsyncSession, token: str) -> Principal:
    """
    Resolve a bearer token to a principal.

    Raises:
        UnauthorizedError: If the token is invalid, the principal is inactive,
            or the id is not found in any collection
    """
    payload = decode_token(token)
    try:
        principal_id = uuid.UUID(str(payload["id"]))
    except ValueError:
        raise UnauthorizedError("Invalid token - malformed principal identifier")

    for kind, model, required_status, inactive_message in _LOOKUP_SEQUENCE:
        found = await db.get(model, principal_id)
        if found is None:
            continue
        if required_status is not None and found.status != required_status:
            raise UnauthorizedError(inactive_message, details={"principal_kind": kind.value})
        logger.debug("Authenticated %s %s", kind.value, principal_id)
        return Principal(**{kind.value: found})

    raise UnauthorizedError("Principal not found", details={"id": str(principal_id)})


async def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(_optional_security),
    db: AsyncSession = Depends(get_async_db_session),
) -> Principal:
    """
    FastAPI dependency returning the caller's principal.

    Never raises: a missing or unusable token yields an anonymous principal.
    """
    if credentials is None:
        return Principal()

    try:
        principal = await resolve_principal(db, credentials.credentials)
    except UnauthorizedError as e:
        logger.warning("Authentication failed, continuing anonymously: %s", e.message)
        return Principal()

    set_principal(str(principal.id), principal.kind.value)
    return principal
