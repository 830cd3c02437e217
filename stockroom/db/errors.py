"""
Store error translation.

Driver exceptions are translated once, at the gateway boundary, into a
``StoreError`` carrying a driver-independent ``StoreErrorCode``. The
endpoint layer classifies those codes into HTTP errors.
"""

from enum import Enum
from typing import Any, Optional

from sqlalchemy.exc import DBAPIError


class StoreErrorCode(str, Enum):
    BAD_FIELD = "BAD_FIELD"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    NOT_FOUND = "NOT_FOUND"
    NO_REFERENCED_ROW = "NO_REFERENCED_ROW"
    SIGNAL = "SIGNAL"
    UNKNOWN = "UNKNOWN"


class StoreError(Exception):
    """Classifiable error raised by the row gateway."""

    def __init__(
        self,
        code: StoreErrorCode,
        message: str = "",
        original: Optional[BaseException] = None,
    ):
        self.code = code
        self.message = message or code.value
        self.original = original
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"StoreError(code={self.code.value!r}, message={self.message!r})"


# PostgreSQL SQLSTATE codes
_PG_CODES = {
    "23505": StoreErrorCode.DUPLICATE_ENTRY,
    "23503": StoreErrorCode.NO_REFERENCED_ROW,
    "42703": StoreErrorCode.BAD_FIELD,
    "23502": StoreErrorCode.BAD_FIELD,
    "22P02": StoreErrorCode.BAD_FIELD,
    "P0001": StoreErrorCode.SIGNAL,
    "23514": StoreErrorCode.SIGNAL,
}

# MySQL server error numbers
_MYSQL_CODES = {
    1062: StoreErrorCode.DUPLICATE_ENTRY,
    1452: StoreErrorCode.NO_REFERENCED_ROW,
    1054: StoreErrorCode.BAD_FIELD,
    1048: StoreErrorCode.BAD_FIELD,
    1364: StoreErrorCode.BAD_FIELD,
    1644: StoreErrorCode.SIGNAL,
}

# SQLite extended result code names (Python 3.11+)
_SQLITE_NAMES = {
    "SQLITE_CONSTRAINT_UNIQUE": StoreErrorCode.DUPLICATE_ENTRY,
    "SQLITE_CONSTRAINT_PRIMARYKEY": StoreErrorCode.DUPLICATE_ENTRY,
    "SQLITE_CONSTRAINT_FOREIGNKEY": StoreErrorCode.NO_REFERENCED_ROW,
    "SQLITE_CONSTRAINT_NOTNULL": StoreErrorCode.BAD_FIELD,
    "SQLITE_CONSTRAINT_TRIGGER": StoreErrorCode.SIGNAL,
}

# Fallback for SQLite builds that do not expose error names
_SQLITE_MESSAGES = (
    ("UNIQUE constraint failed", StoreErrorCode.DUPLICATE_ENTRY),
    ("FOREIGN KEY constraint failed", StoreErrorCode.NO_REFERENCED_ROW),
    ("NOT NULL constraint failed", StoreErrorCode.BAD_FIELD),
    ("no such column", StoreErrorCode.BAD_FIELD),
    ("has no column named", StoreErrorCode.BAD_FIELD),
)


def _sqlstate(orig: Any) -> Optional[str]:
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    cause = getattr(orig, "__cause__", None)
    return getattr(cause, "sqlstate", None) if cause is not None else None


def _mysql_errno(orig: Any) -> Optional[int]:
    args = getattr(orig, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _detail(orig: Any) -> str:
    """Human readable text of a driver error, without driver prefixes."""
    cause = getattr(orig, "__cause__", None)
    for source in (cause, orig):
        if source is None:
            continue
        diag = getattr(source, "diag", None)
        if diag is not None and getattr(diag, "message_primary", None):
            return diag.message_primary
        message = getattr(source, "message", None)
        if isinstance(message, str) and message:
            return message
    args = getattr(orig, "args", ())
    if len(args) >= 2 and isinstance(args[0], int):
        return str(args[1])
    return str(orig)


def translate(exc: BaseException) -> StoreError:
    """
    Translate a SQLAlchemy/driver exception into a ``StoreError``.

    Anything that cannot be recognised becomes ``StoreErrorCode.UNKNOWN``.
    """
    if isinstance(exc, StoreError):
        return exc

    if not isinstance(exc, DBAPIError):
        return StoreError(StoreErrorCode.UNKNOWN, str(exc), exc)

    orig = exc.orig
    detail = _detail(orig)

    sqlstate = _sqlstate(orig)
    if sqlstate in _PG_CODES:
        return StoreError(_PG_CODES[sqlstate], detail, exc)

    errno = _mysql_errno(orig)
    if errno in _MYSQL_CODES:
        return StoreError(_MYSQL_CODES[errno], detail, exc)

    errorname = getattr(orig, "sqlite_errorname", None)
    if errorname in _SQLITE_NAMES:
        return StoreError(_SQLITE_NAMES[errorname], detail, exc)

    for fragment, code in _SQLITE_MESSAGES:
        if fragment in detail:
            return StoreError(code, detail, exc)

    return StoreError(StoreErrorCode.UNKNOWN, detail, exc)


__all__ = ["StoreError", "StoreErrorCode", "translate"]
