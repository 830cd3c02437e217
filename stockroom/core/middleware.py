"""
Core middleware and exception handler registration.

Request tracking, timing and error logging, plus the handlers that render
``BaseAppException`` subclasses as JSON error bodies.
"""
from __future__ import annotations

import time
import uuid
from typing import Callable, Optional

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from stockroom.core.exceptions import BadRequestError, BaseAppException, InternalServerError
from stockroom.core.logging import get_logger

logger = get_logger(__name__)

# Per-request records; the bound request context is merged by structlog
access_logger = structlog.get_logger("stockroom.access")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each incoming request.

    The request ID is stored in ``request.state.request_id``, bound into the
    structlog context for every log record of the request, and echoed in
    the ``X-Request-ID`` response header.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Reuse an upstream id when a proxy already assigned one
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

        response.headers[self.header_name] = request_id
        return response


class TimingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that measures and logs request processing time.

    Adds X-Process-Time header to responses with the processing duration in seconds.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        access_logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            query_params=request.url.query or None,
            status_code=response.status_code,
            process_time=f"{process_time:.4f}s",
            client_host=request.client.host if request.client else None,
        )
        return response


class ErrorLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that logs errors and exceptions during request processing.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
        except Exception as exc:
            access_logger.error(
                "Request processing failed",
                method=request.method,
                path=request.url.path,
                error_type=type(exc).__name__,
                exc_info=True,
            )
            raise

        if response.status_code >= 400:
            access_logger.warning(
                "Request returned error status",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
            )
        return response


def register_middlewares(app: FastAPI) -> None:
    """
    Register all core middlewares to the FastAPI application.

    The last middleware added is the first one to process the request, so
    the request id is assigned before timing and error logging run.
    """
    app.add_middleware(ErrorLoggingMiddleware)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    logger.debug(
        "Core middlewares registered",
        extra={"middlewares": ["RequestIDMiddleware", "TimingMiddleware", "ErrorLoggingMiddleware"]},
    )


async def app_exception_handler(request: Request, exc: BaseAppException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = BadRequestError(details={"errors": jsonable_errors(exc)})
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        f"Unhandled exception: {exc}",
        extra={"method": request.method, "path": request.url.path},
    )
    error = InternalServerError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def get_request_id(request: Request) -> Optional[str]:
    """Retrieve the request ID assigned by ``RequestIDMiddleware``."""
    return getattr(request.state, "request_id", None)


__all__ = [
    "RequestIDMiddleware",
    "TimingMiddleware",
    "ErrorLoggingMiddleware",
    "register_middlewares",
    "register_exception_handlers",
    "get_request_id",
]
