"""
Authentication request/response schemas.
Pydantic v2 compliant.

Request fields are optional at the schema level; the auth service owns the
"missing field" responses so clients get the documented messages instead
of a generic validation error.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "BaseSchema",
    "LoginRequest",
    "LoginResponse",
    "RefreshTokenRequest",
    "RefreshTokenResponse",
    "RegisterRequest",
    "RegisterResponse",
]


class BaseSchema(BaseModel):
    """Common configuration for API schemas."""

    model_config = ConfigDict(populate_by_name=True)


class LoginRequest(BaseSchema):
    email: Optional[str] = Field(default=None, description="Email address")
    password: Optional[str] = Field(default=None, description="Password")


class LoginResponse(BaseSchema):
    id: int = Field(..., description="ID of the authenticated user")
    token: str = Field(..., description="JWT access token, valid for 15 minutes")
    refreshToken: str = Field(..., description="Opaque token used to obtain new access tokens")
    message: str = "Authentication successful"


class RefreshTokenRequest(BaseSchema):
    userID: Optional[int] = Field(default=None, description="ID of the token owner")
    refreshToken: Optional[str] = Field(default=None, description="Refresh token from authentication")


class RefreshTokenResponse(BaseSchema):
    token: str
    message: str = "Token refreshed successfully"


class RegisterRequest(BaseSchema):
    """
    New user registration.

    Users always start as members; roles are changed by an administrator
    through the user resource.
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    organizationID: Optional[int] = None
    phone: Optional[str] = None
    archived: Optional[date] = Field(default=None, description="Date the user was archived")


class RegisterResponse(BaseSchema):
    id: int
    message: str = "User successfully registered"
