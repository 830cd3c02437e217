# stockroom/services/auth/auth_service.py
from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Optional

import jwt
from sqlalchemy import insert, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from stockroom.core.exceptions import BadRequestError, ErrorCode, UnauthorizedError
from stockroom.core.logging import get_logger
from stockroom.core.security import AuthSettings, JWTManager, PasswordHasher, generate_refresh_token
from stockroom.db import tables
from stockroom.repositories.gateway import RowGateway
from stockroom.schemas.auth import (
    LoginResponse,
    RefreshTokenResponse,
    RegisterRequest,
    RegisterResponse,
)

logger = get_logger(__name__)

REQUIRED_REGISTRATION_FIELDS = ("firstName", "lastName", "email", "password", "organizationID")

INVALID_CREDENTIALS = "Email and password combination is incorrect"
INVALID_REFRESH_TOKEN = "Refresh token is invalid"


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated identity attached to ``request.state.user``."""

    user_id: int
    organization_id: int
    role_id: int
    admin_role_id: int = 1

    @property
    def is_admin(self) -> bool:
        return self.role_id == self.admin_role_id


class AuthService:
    """
    Authentication service:

    - Email/password authentication issuing access + refresh tokens
    - Access token renewal from the latest refresh token
    - Registration
    - Access token verification

    Refresh tokens follow a supersession policy: every authentication
    appends a new token row and only the newest row for a user is honored.
    """

    def __init__(self, session: AsyncSession, settings: AuthSettings) -> None:
        self._session = session
        self._settings = settings
        self._hasher = PasswordHasher(settings.bcrypt_rounds)
        self._jwt = JWTManager(settings)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    async def _user_by(self, column: str, value) -> Optional[dict]:
        statement = select(tables.user).where(tables.user.c[column] == value)
        row = (await self._session.execute(statement)).mappings().first()
        return dict(row) if row is not None else None

    async def latest_refresh_token(self, user_id: int) -> Optional[str]:
        statement = (
            select(tables.refresh_token.c.refreshToken)
            .where(tables.refresh_token.c.userID == user_id)
            .order_by(tables.refresh_token.c.refreshTokenID.desc())
            .limit(1)
        )
        return (await self._session.execute(statement)).scalar_one_or_none()

    def _make_token(self, user: dict) -> str:
        return self._jwt.create_access_token(
            user["userID"], user["organizationID"], user["roleID"]
        )

    # ------------------------------------------------------------------ #
    # Authentication
    # ------------------------------------------------------------------ #
    async def authenticate(self, email: Optional[str], password: Optional[str]) -> LoginResponse:
        """
        Email/password authentication.

        Raises:
        - BadRequestError when either credential is missing
        - UnauthorizedError for an unknown email or a wrong password
          (same message for both)
        """
        if not email or not password:
            raise BadRequestError("Missing email or password", ErrorCode.MISSING_REQUIRED_FIELD)

        user = await self._user_by("email", email)
        if user is None:
            logger.info("Authentication failed: unknown email")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        matches = await run_in_threadpool(self._hasher.verify, password, user["password"])
        if not matches:
            logger.info("Authentication failed: wrong password", extra={"user_id": user["userID"]})
            raise UnauthorizedError(INVALID_CREDENTIALS)

        refresh_token = generate_refresh_token(user["userID"], self._settings.refresh_token_bytes)
        await self._session.execute(
            insert(tables.refresh_token).values(userID=user["userID"], refreshToken=refresh_token)
        )
        await self._session.commit()

        logger.info("User authenticated", extra={"user_id": user["userID"]})
        return LoginResponse(
            id=user["userID"],
            token=self._make_token(user),
            refreshToken=refresh_token,
        )

    async def refresh(self, user_id: Optional[int], refresh_token: Optional[str]) -> RefreshTokenResponse:
        """
        Issue a new access token for a valid refresh token.

        The refresh token itself is not rotated.
        """
        if not user_id or not refresh_token:
            raise BadRequestError(
                "Request must contain refresh token and user ID",
                ErrorCode.MISSING_REQUIRED_FIELD,
            )

        stored = await self.latest_refresh_token(user_id)
        if stored is None or not secrets.compare_digest(stored, refresh_token):
            logger.info("Refresh rejected", extra={"user_id": user_id})
            raise UnauthorizedError(INVALID_REFRESH_TOKEN, ErrorCode.TOKEN_INVALID)

        user = await self._user_by("userID", user_id)
        if user is None:
            raise UnauthorizedError(INVALID_REFRESH_TOKEN, ErrorCode.TOKEN_INVALID)

        return RefreshTokenResponse(token=self._make_token(user))

    # ------------------------------------------------------------------ #
    # Registration
    # ------------------------------------------------------------------ #
    async def register(self, data: RegisterRequest) -> RegisterResponse:
        """
        Create a user with a hashed password.

        Raises:
        - BadRequestError when a required field is missing
        - StoreError from the gateway (duplicate email, unknown organization)
        """
        payload = data.model_dump(exclude_none=True)
        missing = [name for name in REQUIRED_REGISTRATION_FIELDS if not payload.get(name)]
        if missing:
            raise BadRequestError(
                "Missing required fields",
                ErrorCode.MISSING_REQUIRED_FIELD,
                details={"missing": missing},
            )

        payload["password"] = await run_in_threadpool(self._hasher.hash, payload["password"])

        gateway = RowGateway(self._session)
        user = await gateway.create("user", "userID", payload)

        logger.info("User registered", extra={"user_id": user["userID"]})
        return RegisterResponse(id=user["userID"])

    # ------------------------------------------------------------------ #
    # Verification
    # ------------------------------------------------------------------ #
    async def identify(self, token: Optional[str]) -> CurrentUser:
        """
        Resolve a bearer token to the user it was issued for.

        The user is re-read so deleted users lose access immediately;
        organization and role come from the stored row.
        """
        if not token:
            raise UnauthorizedError("Missing authentication token", ErrorCode.TOKEN_INVALID)

        try:
            claims = self._jwt.verify_token(token)
        except jwt.InvalidTokenError:
            raise UnauthorizedError("Invalid or expired token", ErrorCode.TOKEN_INVALID)

        user = await self._user_by("userID", claims["userID"])
        if user is None:
            raise UnauthorizedError("Invalid or expired token", ErrorCode.TOKEN_INVALID)

        return CurrentUser(
            user_id=user["userID"],
            organization_id=user["organizationID"],
            role_id=user["roleID"],
            admin_role_id=self._settings.admin_role_id,
        )
