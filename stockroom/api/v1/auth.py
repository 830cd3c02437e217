"""
Authentication routes.

``POST /auth`` exchanges credentials for an access token and a refresh
token, ``POST /auth/refresh`` renews the access token, ``POST
/auth/register`` creates a user and ``HEAD /auth/verify`` checks a token.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status

from stockroom.api.deps import get_auth_service, verify
from stockroom.db.errors import StoreError
from stockroom.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    RefreshTokenResponse,
    RegisterRequest,
    RegisterResponse,
)
from stockroom.services import endpoint
from stockroom.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"])

register_messages = {
    "conflict": "User with this email already exists",
    "missing": "Organization does not exist",
}


@router.post("", response_model=LoginResponse, name="authenticate")
async def authenticate(
    data: Optional[LoginRequest] = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    data = data or LoginRequest()
    return await auth_service.authenticate(data.email, data.password)


@router.post("/refresh", response_model=RefreshTokenResponse, name="refresh")
async def refresh(
    data: Optional[RefreshTokenRequest] = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> RefreshTokenResponse:
    data = data or RefreshTokenRequest()
    return await auth_service.refresh(data.userID, data.refreshToken)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    name="register",
)
async def register(
    request: Request,
    data: Optional[RegisterRequest] = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    """
    Register a user in an existing organization.

    New users always start with the Member role. The body may not name a
    ``roleID`` (or any other unknown field); such requests get a 400.
    Administrators change roles afterwards through ``PUT /user/{userID}``.
    """
    try:
        return await auth_service.register(data or RegisterRequest())
    except StoreError as err:
        endpoint.handle_error(err, register_messages, request)


@router.head("/verify", name="verify", dependencies=[Depends(verify)])
async def verify_token() -> Response:
    return Response(status_code=status.HTTP_200_OK)
