"""
Error taxonomy and the JSON error envelope.

Services raise one of the ``AppError`` subclasses; the handlers registered
by ``register_error_handlers`` turn them into ``{"success": false,
"message": ...}`` responses. Endpoints whose clients expect a historical
status code pass it explicitly, e.g. ``ValidationError(msg, status_code=500)``.
"""
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import get_settings
from .log import get_logger

logger = get_logger(__name__)


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """A required field is missing or a value is out of range."""
    status_code = 400


class AuthError(AppError):
    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


class UpstreamError(AppError):
    """The database or the payment gateway failed."""
    status_code = 500


def error_body(message: str, cause: Optional[BaseException] = None) -> dict:
    body = {"success": False, "message": message}
    if cause is not None and get_settings().EXPOSE_ERROR_DETAIL:
        body["error"] = str(cause)
    return body


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.__cause__),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError):
    content = {"success": False, "message": "Invalid request"}
    if get_settings().EXPOSE_ERROR_DETAIL:
        content["error"] = str(exc.errors())
    return JSONResponse(status_code=422, content=content)


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body("Something went wrong", exc),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
