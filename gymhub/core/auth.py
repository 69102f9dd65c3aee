"""
Request authentication for the GymHub API.

Extracts the bearer token from the Authorization header, verifies it and
exposes the resulting Principal. Role guards build on top of that.
"""
from typing import Callable

from fastapi import Depends, Request

from gymhub.core.errors import PermissionError, UnauthorizedError
from gymhub.core.security import verify_token
from gymhub.models.user import Principal, Role


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise UnauthorizedError("Unauthorized: Missing token")
    token = auth_header[7:].strip()
    if not token:
        raise UnauthorizedError("Unauthorized: Missing token")
    return token


async def get_current_principal(request: Request) -> Principal:
    """
    Resolve the caller from the Authorization header.

    Raises:
        UnauthorizedError: missing, invalid, expired or revoked token
    """
    principal = verify_token(_bearer_token(request))
    request.state.principal = principal
    return principal


def require_role(*roles: Role) -> Callable:
    """Dependency factory allowing only principals with one of the given roles."""
    allowed = set(roles)

    async def _guard(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed:
            names = "/".join(role.value for role in roles)
            raise PermissionError(f"Forbidden: {names} access required")
        return principal

    return _guard


require_owner = require_role(Role.OWNER)
require_admin = require_role(Role.ADMIN)
require_trainer = require_role(Role.TRAINER)
