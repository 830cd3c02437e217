"""
Helpers shared by the resource routers.
"""

from typing import Any, Optional

from fastapi import APIRouter, Request

from stockroom.core.exceptions import BadRequestError


def path_int(request: Request, name: str) -> int:
    try:
        return int(request.path_params[name])
    except (KeyError, ValueError):
        raise BadRequestError(f"{name} must be an integer", details={"parameter": name})


def query_int(request: Request, name: str) -> Optional[int]:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError:
        raise BadRequestError(f"{name} must be an integer", details={"parameter": name})


def organization_id(request: Request) -> int:
    """Tenant of the verified caller; modifiers only run behind ``verify``."""
    return request.state.user.organization_id


def add_resource_routes(router: APIRouter, controller: Any, key: str, name: str) -> APIRouter:
    """
    Register the standard resource routes on ``router``.

    ``GET ""`` list, ``GET /{key}`` read, ``PUT ""`` create,
    ``PUT /{key}`` update, ``DELETE /{key}`` delete.
    """
    router.add_api_route("", controller.get_all, methods=["GET"], name=f"get all {name}s")
    router.add_api_route(f"/{{{key}}}", controller.get, methods=["GET"], name=f"get {name}")
    router.add_api_route("", controller.create, methods=["PUT"], name=f"create {name}")
    router.add_api_route(f"/{{{key}}}", controller.update, methods=["PUT"], name=f"update {name}")
    router.add_api_route(f"/{{{key}}}", controller.delete, methods=["DELETE"], name=f"delete {name}")
    return router
