"""
Custom Exceptions for the Stockroom Application

HTTP-facing error taxonomy. Every error the API returns is one of these,
rendered by the exception handlers registered in ``core.middleware``.
"""

from typing import Any, Dict, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the application"""
    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"

    # Authentication & Authorization
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"
    AUTHORIZATION_FAILED = "AUTHORIZATION_FAILED"
    TOKEN_INVALID = "TOKEN_INVALID"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

    # Database errors
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"


class BaseAppException(Exception):
    """
    Base exception class for all application exceptions.

    Provides consistent error handling across the application with
    structured error information.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format"""
        return {
            "error": {
                "message": self.message,
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__
            }
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message='{self.message}', error_code='{self.error_code.value}')"


class BadRequestError(BaseAppException):
    """Malformed request or unknown fields"""

    def __init__(
        self,
        message: str = "Wrong fields",
        error_code: ErrorCode = ErrorCode.INVALID_REQUEST,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details, 400)


class UnauthorizedError(BaseAppException):
    """Missing or invalid credentials"""

    def __init__(
        self,
        message: str = "Unauthorized",
        error_code: ErrorCode = ErrorCode.AUTHENTICATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details, 401)


class ForbiddenError(BaseAppException):
    """Authenticated but not allowed"""

    def __init__(
        self,
        message: str = "Forbidden",
        error_code: ErrorCode = ErrorCode.AUTHORIZATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details, 403)


class NotFoundError(BaseAppException):
    def __init__(
        self,
        message: str = "Does not exist",
        error_code: ErrorCode = ErrorCode.RESOURCE_NOT_FOUND,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details, 404)


class ConflictError(BaseAppException):
    def __init__(
        self,
        message: str = "Already exists",
        error_code: ErrorCode = ErrorCode.DUPLICATE_ENTRY,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details, 409)


class InternalServerError(BaseAppException):
    def __init__(
        self,
        message: str = "Something went wrong",
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details, 500)


__all__ = [
    'ErrorCode',
    'BaseAppException',
    'BadRequestError',
    'UnauthorizedError',
    'ForbiddenError',
    'NotFoundError',
    'ConflictError',
    'InternalServerError',
]
