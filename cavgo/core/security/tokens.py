"""
JWT issuing and verification.

Tokens are HS256-signed and carry the principal's database id in the `id`
claim and the collection it belongs to in `kind`.
"""

import logging
from datetime import timedelta
from typing import Any

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError

from cavgo.core.config import settings
from cavgo.core.errors import UnauthorizedError
from cavgo.core.timeutils import utcnow
from cavgo.domain.enums import PrincipalKind

logger = logging.getLogger(__name__)

INVALID_OR_EXPIRED_TOKEN_MSG = "Invalid or expired token"

_ACCESS_TOKEN_HOURS = {
    PrincipalKind.USER: lambda: settings.user_token_hours,
    PrincipalKind.DRIVER: lambda: settings.driver_token_hours,
    PrincipalKind.AGENT: lambda: settings.agent_token_hours,
    PrincipalKind.POS: lambda: settings.pos_token_hours,
    PrincipalKind.SUPERUSER: lambda: settings.superuser_token_hours,
}


def _encode(claims: dict[str, Any], secret: str, expires_hours: float) -> str:
    now = utcnow()
    payload = {
        **claims,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=expires_hours)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(
    subject_id: Any, kind: PrincipalKind, expires_hours: float | None = None
) -> str:
    """
    Issue an access token for a principal.

    Args:
        subject_id: Database id of the principal
        kind: Collection the principal belongs to
        expires_hours: Override of the per-kind lifetime

    Returns:
        Encoded JWT
    """
    hours = expires_hours if expires_hours is not None else _ACCESS_TOKEN_HOURS[kind]()
    return _encode({"id": str(subject_id), "kind": kind.value}, settings.jwt_secret, hours)


def create_refresh_token(subject_id: Any, kind: PrincipalKind = PrincipalKind.SUPERUSER) -> str:
    """Issue a refresh token signed with the refresh secret."""
    return _encode(
        {"id": str(subject_id), "kind": kind.value, "typ": "refresh"},
        settings.jwt_refresh_secret,
        settings.superuser_refresh_hours,
    )


def decode_token(token: str, *, refresh: bool = False) -> dict[str, Any]:
    """
    Verify a token and return its claims.

    Raises:
        UnauthorizedError: On bad signature, expiry, or a missing `id` claim
    """
    secret = settings.jwt_refresh_secret if refresh else settings.jwt_secret
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)
    except JWTClaimsError as e:
        logger.warning("Invalid token claims: %s", e)
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)
    except JWTError as e:
        logger.warning("JWT verification failed: %s", e)
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)

    if not payload.get("id"):
        raise UnauthorizedError("Invalid token - missing principal identifier")
    if refresh and payload.get("typ") != "refresh":
        raise UnauthorizedError("Not a refresh token")
    return payload
