"""
Endpoint factory.

Turns a ``(table, key column, options)`` description into async FastAPI
handlers backed by the tenant-scoped row gateway. Handlers read the
authenticated identity from ``request.state.user`` (set by the ``verify``
dependency), so every route built here must be registered behind it.

Store failures are logged once here and re-raised as HTTP-facing
``BaseAppException`` subclasses.
"""

import json
from types import SimpleNamespace
from typing import Any, Dict, Mapping, NoReturn, Optional, Sequence

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from stockroom.core.exceptions import (
    BadRequestError,
    BaseAppException,
    ConflictError,
    InternalServerError,
    NotFoundError,
)
from stockroom.core.logging import get_logger
from stockroom.core.pagination import PaginationModifier, PaginationWindow, build_links, link_header
from stockroom.db.errors import StoreError, StoreErrorCode
from stockroom.db.session import get_db
from stockroom.repositories.gateway import ORGANIZATION_COLUMN, RowGateway, Search, SortCriterion
from stockroom.repositories.modifiers import ModifierLike, bind_modify, compose

logger = get_logger(__name__)

Messages = Optional[Mapping[str, str]]
# Payload column -> table whose row it names; the column shares its name with that table's key
References = Optional[Mapping[str, str]]

DEFAULT_MESSAGES = {
    "create": "Created",
    "delete": "Deleted",
    "conflict": "Already exists",
    "missing": "Does not exist",
    "bad_request": "Wrong fields",
    "default": "Something went wrong",
}


def choose_message(kind: str, messages: Messages = None) -> str:
    """Custom message for ``kind``, else its default, else the generic one."""
    messages = messages or {}
    return messages.get(kind) or DEFAULT_MESSAGES.get(kind) or DEFAULT_MESSAGES["default"]


def choose_error(err: BaseException, messages: Messages = None) -> BaseAppException:
    """
    Classify a store error into the HTTP error the client sees.

    Custom messages change the text only; the status always follows the
    store error code.
    """
    code = getattr(err, "code", None)

    if code == StoreErrorCode.BAD_FIELD:
        return BadRequestError(choose_message("bad_request", messages))
    if code == StoreErrorCode.DUPLICATE_ENTRY:
        return ConflictError(choose_message("conflict", messages))
    if code in (StoreErrorCode.NOT_FOUND, StoreErrorCode.NO_REFERENCED_ROW):
        return NotFoundError(choose_message("missing", messages))
    if code == StoreErrorCode.SIGNAL:
        return BadRequestError(getattr(err, "message", None) or choose_message("bad_request", messages))
    return InternalServerError(choose_message("default", messages))


def handle_error(err: BaseException, messages: Messages, request: Request) -> NoReturn:
    """Log the original store error and raise its classified counterpart."""
    classified = choose_error(err, messages)
    extra = {
        "method": request.method,
        "path": request.url.path,
        "store_code": getattr(getattr(err, "code", None), "value", None),
        "store_message": getattr(err, "message", str(err)),
        "status_code": classified.status_code,
    }
    if classified.status_code >= 500:
        original = getattr(err, "original", None) or err
        logger.error(
            f"Store error: {err!r}",
            extra=extra,
            exc_info=(type(original), original, original.__traceback__),
        )
    else:
        logger.warning(f"Store error: {err!r}", extra=extra)
    raise classified from err


def organization_of(request: Request, has_organization_id: bool = True) -> Optional[int]:
    """Tenant of the authenticated user, or ``None`` when scoping is off."""
    if not has_organization_id:
        return None
    user = getattr(request.state, "user", None)
    return user.organization_id if user is not None else None


async def read_body(request: Request) -> Dict[str, Any]:
    """JSON object body of the request; an empty body reads as ``{}``."""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise BadRequestError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise BadRequestError("Request body must be a JSON object")
    return body


def get_all(
    table_name: str,
    *,
    modify: Optional[ModifierLike] = None,
    messages: Messages = None,
    has_organization_id: bool = True,
    sort_by: Optional[Sequence[SortCriterion]] = None,
    search_columns: Optional[Sequence[str]] = None,
):
    """
    List handler.

    ``?search=`` filters over ``search_columns``; ``?limit=`` / ``?offset=``
    page the results and add navigation links. Each row is annotated with
    its ``sortIndex`` in the returned order.
    """

    async def endpoint(request: Request, response: Response, db: AsyncSession = Depends(get_db)):
        window = PaginationWindow.from_params(request.query_params)
        search_value = request.query_params.get("search")
        search = Search(tuple(search_columns or ()), search_value) if search_value else None
        paging = PaginationModifier(window) if window.requested else None

        try:
            results = await RowGateway(db).get_all(
                table_name,
                organization_of(request, has_organization_id),
                bind_modify(compose(modify, paging), request),
                sort_by,
                search,
            )
        except StoreError as err:
            handle_error(err, messages, request)

        for index, row in enumerate(results):
            row["sortIndex"] = index

        if not window.requested:
            return {"results": results}

        links = build_links(request.url, window, len(results))
        response.headers["Link"] = link_header(links)
        return {
            "results": results,
            "_links": {rel: {"href": href} for rel, href in links.items()},
        }

    return endpoint


def get(
    table_name: str,
    column_name: str,
    *,
    modify: Optional[ModifierLike] = None,
    messages: Messages = None,
    has_organization_id: bool = True,
):
    async def endpoint(request: Request, db: AsyncSession = Depends(get_db)):
        try:
            return await RowGateway(db).get(
                table_name,
                column_name,
                request.path_params[column_name],
                organization_of(request, has_organization_id),
                bind_modify(modify, request),
            )
        except StoreError as err:
            handle_error(err, messages, request)

    return endpoint


def create(
    table_name: str,
    column_name: str,
    *,
    modify: Optional[ModifierLike] = None,
    res_modify: Optional[ModifierLike] = None,
    messages: Messages = None,
    has_organization_id: bool = True,
    references: References = None,
):
    """
    Create handler.

    With scoping enabled the row's ``organizationID`` is filled in from the
    authenticated user; a payload naming another organization is rejected.
    Columns listed in ``references`` must point at rows of the same
    organization.
    """

    async def endpoint(request: Request, db: AsyncSession = Depends(get_db)):
        payload = await read_body(request)
        gateway = RowGateway(db)
        organization_id = organization_of(request, has_organization_id)

        try:
            if organization_id:
                if payload.get(ORGANIZATION_COLUMN) in (None, ""):
                    payload[ORGANIZATION_COLUMN] = organization_id
                else:
                    column = gateway.column(gateway.table(table_name), ORGANIZATION_COLUMN)
                    if gateway.coerce(column, payload[ORGANIZATION_COLUMN]) != organization_id:
                        raise BadRequestError(choose_message("bad_request", messages))

            await gateway.check_references(references, payload, organization_id)
            return await gateway.create(
                table_name,
                column_name,
                payload,
                bind_modify(modify, request),
                bind_modify(res_modify, request),
            )
        except StoreError as err:
            handle_error(err, messages, request)

    return endpoint


def update(
    table_name: str,
    column_name: str,
    *,
    modify: Optional[ModifierLike] = None,
    res_modify: Optional[ModifierLike] = None,
    messages: Messages = None,
    has_organization_id: bool = True,
    references: References = None,
):
    async def endpoint(request: Request, db: AsyncSession = Depends(get_db)):
        payload = await read_body(request)
        gateway = RowGateway(db)
        organization_id = organization_of(request, has_organization_id)
        try:
            await gateway.check_references(references, payload, organization_id)
            return await gateway.update(
                table_name,
                column_name,
                request.path_params[column_name],
                payload,
                organization_id,
                bind_modify(modify, request),
                bind_modify(res_modify, request),
            )
        except StoreError as err:
            handle_error(err, messages, request)

    return endpoint


def delete(
    table_name: str,
    column_name: str,
    *,
    modify: Optional[ModifierLike] = None,
    messages: Messages = None,
    has_organization_id: bool = True,
):
    """
    Delete handler: ``{message, id}`` when a row was removed, otherwise an
    empty 204 so repeating a delete is harmless.
    """

    async def endpoint(request: Request, db: AsyncSession = Depends(get_db)):
        gateway = RowGateway(db)
        value = request.path_params[column_name]
        try:
            removed = await gateway.delete(
                table_name,
                column_name,
                value,
                organization_of(request, has_organization_id),
                bind_modify(modify, request),
            )
            key = gateway.coerce(gateway.column(gateway.table(table_name), column_name), value)
        except StoreError as err:
            handle_error(err, messages, request)

        if removed > 0:
            return {"message": choose_message("delete", messages), "id": key}
        return Response(status_code=204)

    return endpoint


def default():
    """Placeholder handler answering with an empty object."""

    async def endpoint():
        return {}

    return endpoint


def add_all_methods(
    controller: Any,
    table_name: str,
    column_name: str,
    messages: Messages = None,
) -> Any:
    """Attach the five standard handlers to ``controller`` and return it."""
    controller.get_all = get_all(table_name, messages=messages)
    controller.get = get(table_name, column_name, messages=messages)
    controller.create = create(table_name, column_name, messages=messages)
    controller.update = update(table_name, column_name, messages=messages)
    controller.delete = delete(table_name, column_name, messages=messages)
    return controller


def resource(table_name: str, column_name: str, messages: Messages = None) -> SimpleNamespace:
    """New controller namespace with the standard handlers attached."""
    return add_all_methods(SimpleNamespace(), table_name, column_name, messages)


__all__ = [
    "DEFAULT_MESSAGES",
    "choose_message",
    "choose_error",
    "handle_error",
    "get_all",
    "get",
    "create",
    "update",
    "delete",
    "default",
    "add_all_methods",
    "resource",
]
