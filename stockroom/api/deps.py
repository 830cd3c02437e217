# stockroom/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.config import get_settings
from stockroom.core.exceptions import ForbiddenError
from stockroom.core.security import AuthSettings
from stockroom.db.session import get_db
from stockroom.services.auth import AuthService, CurrentUser

# Bearer scheme; errors are raised by ``verify`` so they use the app error body
bearer_scheme = HTTPBearer(auto_error=False)


def get_auth_settings() -> AuthSettings:
    """
    Provide AuthSettings derived from application Settings.
    """
    return get_settings().auth_settings


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    auth_settings: AuthSettings = Depends(get_auth_settings),
) -> AuthService:
    return AuthService(db, auth_settings)


# ------------------------------------------------------------------ #
# Current user
# ------------------------------------------------------------------ #
async def verify(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> CurrentUser:
    """
    Authenticate the request from its ``Authorization: Bearer`` header.

    The identity is attached to ``request.state.user`` for the endpoint
    factory handlers. Raises 401 on a missing, invalid or expired token.
    """
    token = credentials.credentials if credentials is not None else None
    user = await auth_service.identify(token)
    request.state.user = user
    return user


def check_admin(user: CurrentUser = Depends(verify)) -> CurrentUser:
    if not user.is_admin:
        raise ForbiddenError("Must be an administrator")
    return user


def check_user_matches(request: Request, user: CurrentUser = Depends(verify)) -> CurrentUser:
    """The path ``userID`` must be the caller's own id, unless the caller is an admin."""
    try:
        target = int(request.path_params.get("userID", ""))
    except ValueError:
        target = None

    if target == user.user_id:
        return user
    return check_admin(user)


__all__ = [
    "bearer_scheme",
    "get_auth_settings",
    "get_auth_service",
    "verify",
    "check_admin",
    "check_user_matches",
]
