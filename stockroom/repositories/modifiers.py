"""
Query modifiers.

A modifier narrows or extends a statement the gateway has already built
(tenant scope, search and sort applied). It receives the current request
so it can read path/query parameters and the authenticated identity, and
returns the same or a chained statement. It never executes anything.

Resources register concrete modifiers as module-level objects; anything
with an ``apply(request, statement)`` method or a plain two-argument
callable qualifies.
"""

from typing import Any, Callable, Optional, Protocol, Union, runtime_checkable

from sqlalchemy import and_
from sqlalchemy.sql import ColumnElement, Executable

BoundModifier = Callable[[Executable], Executable]


@runtime_checkable
class QueryModifier(Protocol):
    def apply(self, request: Any, statement: Executable) -> Executable:
        ...


ModifierLike = Union[QueryModifier, Callable[[Any, Executable], Executable]]


def _apply(modify: ModifierLike, request: Any, statement: Executable) -> Executable:
    if isinstance(modify, QueryModifier):
        return modify.apply(request, statement)
    return modify(request, statement)


def bind_modify(modify: Optional[ModifierLike], request: Any) -> Optional[BoundModifier]:
    """
    Pre-bind the request to a modifier.

    Returns ``None`` when no modifier is configured so the gateway can skip
    the call entirely.
    """
    if modify is None:
        return None

    def bound(statement: Executable) -> Executable:
        return _apply(modify, request, statement)

    return bound


class ComposedModifier:
    """Modifiers applied left to right."""

    def __init__(self, *modifiers: ModifierLike):
        self.modifiers = modifiers

    def apply(self, request: Any, statement: Executable) -> Executable:
        for modify in self.modifiers:
            statement = _apply(modify, request, statement)
        return statement

    def __repr__(self) -> str:
        return f"ComposedModifier{self.modifiers!r}"


def compose(*modifiers: Optional[ModifierLike]) -> Optional[ModifierLike]:
    present = [m for m in modifiers if m is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    return ComposedModifier(*present)


class WherePathParam:
    """Restrict ``table.column`` to the value of a path parameter."""

    def __init__(self, column: Any, param: Optional[str] = None):
        self.column = column
        self.param = param or column.name

    def apply(self, request: Any, statement: Executable) -> Executable:
        raw = request.path_params[self.param]
        try:
            value = self.column.type.python_type(raw)
        except (TypeError, ValueError, NotImplementedError):
            value = raw
        return statement.where(self.column == value)

    def __repr__(self) -> str:
        return f"WherePathParam({self.column.table.name}.{self.column.name})"


def same_organization(target: Any, source: Any, key: str) -> ColumnElement:
    """Join condition on ``key`` that also keeps both rows in one organization."""
    return and_(
        target.c[key] == source.c[key],
        target.c.organizationID == source.c.organizationID,
    )


__all__ = [
    "QueryModifier",
    "BoundModifier",
    "ComposedModifier",
    "WherePathParam",
    "bind_modify",
    "compose",
    "same_organization",
]
