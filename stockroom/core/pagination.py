"""
Core pagination helpers.

This module provides:
- `PaginationWindow` parsed from ``limit`` / ``offset`` query parameters.
- `paginate` to constrain a statement by the parameters actually given.
- `PaginationModifier` so paging composes with resource query modifiers.
- `build_links` / `link_header` for hypermedia navigation links.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.sql import Select
from starlette.datastructures import URL

from stockroom.core.exceptions import BadRequestError


def _parse_non_negative(name: str, raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        value = int(raw)
    except ValueError:
        raise BadRequestError(f"{name} must be a non-negative integer", details={"parameter": name})
    if value < 0:
        raise BadRequestError(f"{name} must be a non-negative integer", details={"parameter": name})
    return value


@dataclass(frozen=True)
class PaginationWindow:
    """Requested slice of a collection; either bound may be absent."""

    limit: Optional[int] = None
    offset: Optional[int] = None

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "PaginationWindow":
        return cls(
            limit=_parse_non_negative("limit", params.get("limit")),
            offset=_parse_non_negative("offset", params.get("offset")),
        )

    @property
    def requested(self) -> bool:
        return self.limit is not None or self.offset is not None


def paginate(statement: Select, window: PaginationWindow) -> Select:
    """Apply only the bounds present in ``window``; no defaults are invented."""
    if window.limit is not None:
        statement = statement.limit(window.limit)
    if window.offset is not None:
        statement = statement.offset(window.offset)
    return statement


class PaginationModifier:
    """Query modifier applying a pagination window."""

    def __init__(self, window: PaginationWindow):
        self.window = window

    def apply(self, request: Any, statement: Select) -> Select:
        return paginate(statement, self.window)

    def __repr__(self) -> str:
        return f"PaginationModifier(limit={self.window.limit}, offset={self.window.offset})"


def build_links(url: URL, window: PaginationWindow, returned: int) -> Dict[str, str]:
    """
    Navigation links for a page of results.

    Args:
        url: URL of the current request (other query parameters are kept)
        window: Window that produced the page
        returned: Number of rows in the page

    Returns:
        Mapping of relation name to href; ``self`` is always present
    """
    links = {"self": str(url)}
    offset = window.offset or 0

    if window.limit is not None and returned >= window.limit and window.limit > 0:
        links["next"] = str(url.include_query_params(offset=offset + window.limit))

    if offset > 0:
        previous = max(offset - window.limit, 0) if window.limit is not None else 0
        links["prev"] = str(url.include_query_params(offset=previous))

    return links


def link_header(links: Mapping[str, str]) -> str:
    """Render links as an RFC 8288 ``Link`` header value."""
    return ", ".join(f'<{href}>; rel="{rel}"' for rel, href in links.items())


__all__ = [
    "PaginationWindow",
    "PaginationModifier",
    "paginate",
    "build_links",
    "link_header",
]
