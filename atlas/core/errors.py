"""
Application errors and the FastAPI handlers that render them.

Every error leaves the service in one shape:

    {"error": {"code", "message", "request_id"}, "detail": message}

with the request id echoed in the x-request-id header.
"""

import logging
from typing import Optional
from uuid import uuid4

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.requests import Request

from atlas.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    """Base for errors raised deliberately by services and dependencies."""

    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or uuid4().hex


def _respond(rid: str, status: int, code: str, message: str) -> JSONResponse:
    response = JSONResponse(
        status_code=status,
        content={"error": {"code": code, "message": message, "request_id": rid}, "detail": message},
    )
    response.headers["x-request-id"] = rid
    return response


def _invalid_fields(exc: RequestValidationError) -> str:
    # loc is ("body" | "query" | "header", field, ...); the source part is dropped.
    fields = []
    for err in exc.errors():
        name = ".".join(str(part) for part in err.get("loc", ())[1:])
        if name and name not in fields:
            fields.append(name)
    if not fields:
        return "Invalid request"
    return "Missing or invalid fields: " + ", ".join(fields)


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _request_id(request)
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.WARNING,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "status": exc.status_code},
    )
    return _respond(rid, exc.status_code, exc.code, exc.message)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return _respond(rid, exc.status_code, code, str(exc.detail or "HTTP error"))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Schema failures are client errors: 400 validation_error, not 422."""
    rid = _request_id(request)
    logger.warning(
        "request.invalid",
        extra={"request_id": rid, "error_code": ValidationError.code, "status": 400},
    )
    return _respond(rid, 400, ValidationError.code, _invalid_fields(exc))


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _request_id(request)
    logger.error(
        "unhandled.exception",
        exc_info=exc,
        extra={"request_id": rid, "error_code": "internal_error", "status": 500},
    )
    return _respond(rid, 500, "internal_error", "Unexpected error")
