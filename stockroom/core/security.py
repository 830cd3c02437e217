"""
Password hashing and JWT token utilities.

Access tokens are HS256-signed JWTs carrying the user identity claims.
Refresh tokens are opaque random strings persisted per user.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthSettings:
    """
    Immutable auth configuration handed to the auth service.

    Built once from ``Settings.auth_settings``.
    """

    secret_key: str
    algorithm: str = "HS256"
    access_token_expires_minutes: int = 15
    bcrypt_rounds: int = 10
    refresh_token_bytes: int = 40
    admin_role_id: int = 1

    def __post_init__(self) -> None:
        if not self.secret_key:
            raise ValueError("secret_key must be provided")
        if self.access_token_expires_minutes <= 0:
            raise ValueError("access_token_expires_minutes must be positive")
        if not (PasswordHasher.MIN_ROUNDS <= self.bcrypt_rounds <= PasswordHasher.MAX_ROUNDS):
            raise ValueError(
                f"bcrypt_rounds must be between {PasswordHasher.MIN_ROUNDS} "
                f"and {PasswordHasher.MAX_ROUNDS}"
            )
        if self.refresh_token_bytes < 16:
            raise ValueError("refresh_token_bytes must be at least 16")


def _prepare_password_for_bcrypt(password: str) -> bytes:
    """
    bcrypt only looks at the first 72 bytes; longer passwords are
    pre-hashed with SHA-256 so no part of them is ignored.
    """
    encoded = password.encode('utf-8')
    if len(encoded) > 72:
        return hashlib.sha256(encoded).hexdigest().encode('ascii')
    return encoded


class PasswordHasher:
    """
    Handle password hashing and verification using bcrypt.
    """

    DEFAULT_ROUNDS = 10
    MIN_ROUNDS = 4
    MAX_ROUNDS = 31

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        if not (self.MIN_ROUNDS <= rounds <= self.MAX_ROUNDS):
            raise ValueError(
                f"Rounds must be between {self.MIN_ROUNDS} and {self.MAX_ROUNDS}, got {rounds}"
            )
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """
        Hash a password with a fresh salt.

        Raises:
            ValueError: If password is empty
            TypeError: If password is not a string
        """
        if not isinstance(password, str):
            raise TypeError("Password must be a string")
        if not password:
            raise ValueError("Password cannot be empty")

        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(_prepare_password_for_bcrypt(password), salt).decode('utf-8')

    def verify(self, password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Returns False for empty input or a malformed stored hash.
        """
        if not password or not hashed_password:
            return False

        try:
            return bcrypt.checkpw(
                _prepare_password_for_bcrypt(password),
                hashed_password.encode('utf-8'),
            )
        except ValueError as e:
            logger.warning(f"Error verifying password: {e}")
            return False


class JWTManager:
    """
    JWT access token manager.

    Claims are ``userID``, ``organizationID`` and ``roleID`` plus the
    standard ``iat`` / ``exp``.
    """

    def __init__(self, settings: AuthSettings):
        self.secret_key = settings.secret_key
        self.algorithm = settings.algorithm
        self.expires = timedelta(minutes=settings.access_token_expires_minutes)

    def create_access_token(self, user_id: int, organization_id: int, role_id: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "userID": user_id,
            "organizationID": organization_id,
            "roleID": role_id,
            "iat": now,
            "exp": now + self.expires,
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"Access token created for user {user_id}")
        return token

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode a JWT access token.

        Raises:
            jwt.ExpiredSignatureError: If token is expired
            jwt.InvalidTokenError: If token is invalid
        """
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "userID"]},
            )
        except jwt.ExpiredSignatureError:
            logger.info("Token verification failed: token expired")
            raise
        except jwt.InvalidTokenError as e:
            logger.info(f"Token verification failed: {e}")
            raise


def generate_refresh_token(user_id: int, nbytes: int = 40) -> str:
    """Opaque refresh token: the user id followed by ``nbytes`` random bytes in hex."""
    return f"{user_id}{secrets.token_hex(nbytes)}"


__all__ = [
    'AuthSettings',
    'PasswordHasher',
    'JWTManager',
    'generate_refresh_token',
]
