"""
Security module - token issuing, principal resolution and access control.

Submodules:

- passwords.py: bcrypt password hashing
- tokens.py: JWT issuing and verification
- authentication.py: bearer token to `Principal` resolution
- permissions.py: access-control dependencies

Import directly from this module, or from submodules for more granular access.
"""

from .authentication import Principal, get_principal, resolve_principal
from .passwords import hash_password, verify_password
from .permissions import (
    require_admin,
    require_agent,
    require_any,
    require_authenticated,
    require_driver,
    require_pos,
    require_superuser,
    require_user,
    require_user_types,
)
from .tokens import (
    INVALID_OR_EXPIRED_TOKEN_MSG,
    create_access_token,
    create_refresh_token,
    decode_token,
)

__all__ = [
    "INVALID_OR_EXPIRED_TOKEN_MSG",
    "Principal",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "get_principal",
    "hash_password",
    "require_admin",
    "require_agent",
    "require_any",
    "require_authenticated",
    "require_driver",
    "require_pos",
    "require_superuser",
    "require_user",
    "require_user_types",
    "resolve_principal",
    "verify_password",
]
