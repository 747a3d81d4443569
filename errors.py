"""
Error taxonomy and the centralized JSON error formatter.

Handlers raise one of the ``ApiError`` subclasses below; the exception
handlers registered by ``register_error_handlers`` turn every failure into
``{"message": ..., "stack": ...}`` with the matching status code. The stack
is only filled in outside production.
"""
import logging
import traceback
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import is_production

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ApiError):
    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class NotFound(ApiError):
    status_code = 404


class Conflict(ApiError):
    status_code = 409


class Internal(ApiError):
    status_code = 500


def _format_stack(exc: BaseException) -> Optional[str]:
    if is_production():
        return None
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def error_response(exc: BaseException, message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"message": message, "stack": _format_stack(exc)},
    )


async def api_error_handler(request: Request, exc: ApiError):
    logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return error_response(exc, exc.message, exc.status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        message = f"Not Found - {request.url.path}"
    else:
        message = str(exc.detail)
    logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, message)
    return error_response(exc, message, exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    message = "; ".join(parts) or "Invalid request"
    return error_response(exc, message, ValidationError.status_code)


async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Database failure on %s %s", request.method, request.url.path)
    return error_response(exc, "Database error", Internal.status_code)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = "Internal server error" if is_production() else (str(exc) or "Internal server error")
    return error_response(exc, message, Internal.status_code)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(PyMongoError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
