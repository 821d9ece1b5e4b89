"""
DevCamper Backend — Authorization Gate
========================================

What:  FastAPI dependencies that admit or reject a request before its handler
       runs.
How:   Per request:
           Unauthenticated → TokenPresent → TokenVerified → RoleChecked → Admitted
       or short-circuit to Rejected (NotAuthenticated 401 / NotAuthorized 403).

Usage:
    @router.get("/me")
    async def me(principal: Principal = Depends(get_current_principal)): ...

    @router.post("", dependencies=[Depends(require_roles(Role.PUBLISHER, Role.ADMIN))])
    async def create(...): ...

FastAPI caches dependencies within a request, so a route that declares both
`get_current_principal` and `require_roles(...)` resolves the token once.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from devcamper.auth.security import verify_token
from devcamper.database import get_db_session
from devcamper.exceptions import InvalidToken, NotAuthenticated, NotAuthorized
from devcamper.models.user import Role, User

logger = logging.getLogger(__name__)

TOKEN_COOKIE = "token"


@dataclass(frozen=True)
class Principal:
    """The resolved identity of an admitted request. Read-only once built."""

    id: uuid.UUID
    role: str
    user: User

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=user.role, user=user)


def extract_token(request: Request) -> Optional[str]:
    """
    Find the access token: `Authorization: Bearer <token>` first, then the
    `token` cookie. Returns None when neither is present.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    cookie = request.cookies.get(TOKEN_COOKIE)
    if cookie:
        return cookie
    return None


async def get_current_principal(
    request: Request,
    db: AsyncSession = Depends(get_db_session),
) -> Principal:
    """
    Resolve the request's token to a live user.

    Raises:
        NotAuthenticated: no token, token rejected, or the user no longer exists
    """
    token = extract_token(request)
    if token is None:
        raise NotAuthenticated()

    try:
        user_id = verify_token(token)
    except InvalidToken as e:
        logger.info("Rejected token: %s", e.message)
        raise NotAuthenticated() from e

    user = await db.get(User, user_id)
    if user is None:
        logger.info("Token subject %s no longer exists", user_id)
        raise NotAuthenticated()

    principal = Principal.from_user(user)
    request.state.principal = principal
    return principal


def require_roles(*roles: Role) -> Callable:
    """
    Build a dependency that admits only principals holding one of `roles`.

    Raises:
        NotAuthorized: the principal's role is not in the allow-list
    """
    allowed = {role.value for role in roles}

    async def _check_role(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if principal.role not in allowed:
            raise NotAuthorized(
                message=f"User role {principal.role} is not authorized to access this route",
                context={"allowed": sorted(allowed)},
            )
        return principal

    return _check_role
