"""
Access-control dependencies for FastAPI endpoints.

Each factory returns a dependency that reads the resolved `Principal` and
either returns the identity the endpoint needs or raises:

- UnauthorizedError when the required kind of caller is absent
- ForbiddenError when the caller is present but lacks the role
"""

import logging

from fastapi import Depends

from cavgo.core.errors import ForbiddenError, UnauthorizedError
from cavgo.db.models import Agent, Driver, PosMachine, SuperUser, User
from cavgo.domain.enums import PrincipalKind, UserType

from .authentication import Principal, get_principal

logger = logging.getLogger(__name__)

USER_NOT_AUTHENTICATED_MSG = "User not authenticated"


def require_authenticated():
    """Dependency factory accepting any authenticated principal."""

    def checker(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.is_anonymous:
            raise UnauthorizedError(USER_NOT_AUTHENTICATED_MSG)
        return principal

    return checker


def require_any(*kinds: PrincipalKind):
    """
    Dependency factory accepting principals of the given kinds.

    Example:
        @router.post("/tickets/verify")
        async def verify(principal: Principal = Depends(require_any(PrincipalKind.POS))):
            ...
    """
    allowed = set(kinds)

    def checker(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.is_anonymous:
            raise UnauthorizedError(USER_NOT_AUTHENTICATED_MSG)
        if principal.kind not in allowed:
            logger.warning(
                "Access denied - %s %s is not one of %s",
                principal.kind.value,
                principal.id,
                sorted(k.value for k in allowed),
            )
            raise ForbiddenError(
                "Insufficient permissions",
                details={
                    "required_kinds": sorted(k.value for k in allowed),
                    "principal_kind": principal.kind.value,
                },
            )
        return principal

    return checker


def require_user():
    """Dependency factory returning the authenticated passenger-side `User`."""

    def checker(principal: Principal = Depends(get_principal)) -> User:
        if principal.user is None:
            raise UnauthorizedError(USER_NOT_AUTHENTICATED_MSG)
        return principal.user

    return checker


def require_user_types(*user_types: UserType):
    """
    Dependency factory for role-based access on `User.user_type`.

    Args:
        user_types: Accepted user types (e.g. admin, company)
    """
    allowed = set(user_types)

    def checker(user: User = Depends(require_user())) -> User:
        if user.user_type not in allowed:
            logger.warning(
                "Access denied - user %s has type %s, required one of %s",
                user.id,
                user.user_type.value,
                sorted(t.value for t in allowed),
            )
            raise ForbiddenError(
                "Insufficient permissions",
                details={
                    "required_user_types": sorted(t.value for t in allowed),
                    "user_type": user.user_type.value,
                },
            )
        return user

    return checker


def require_admin():
    """Dependency factory for admin-only endpoints."""
    return require_user_types(UserType.ADMIN)


def require_driver():
    def checker(principal: Principal = Depends(get_principal)) -> Driver:
        if principal.driver is None:
            raise UnauthorizedError("Driver not authenticated")
        return principal.driver

    return checker


def require_agent():
    def checker(principal: Principal = Depends(get_principal)) -> Agent:
        if principal.agent is None:
            raise UnauthorizedError("Agent not authenticated")
        return principal.agent

    return checker


def require_pos():
    def checker(principal: Principal = Depends(get_principal)) -> PosMachine:
        if principal.pos is None:
            raise UnauthorizedError("POS machine not authenticated")
        return principal.pos

    return checker


def require_superuser():
    def checker(principal: Principal = Depends(get_principal)) -> SuperUser:
        if principal.superuser is None:
            raise UnauthorizedError("Super user not authenticated")
        return principal.superuser

    return checker
