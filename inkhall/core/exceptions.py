# inkhall/core/exceptions.py
"""
Domain exceptions and their translation into HTTP responses.

Services raise these; the handlers registered on the app turn them into
``{"message": ..., "errors": [...]}`` bodies.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkhall.core.config import settings

logger = logging.getLogger(__name__)


class InkhallError(Exception):
    """Base for all business errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request failed"

    def __init__(self, message: str | None = None, errors: list[dict] | None = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(InkhallError):
    """Malformed or missing input."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class AuthenticationError(InkhallError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication failed"


class PermissionDenied(InkhallError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Permission denied"


class NotFoundError(InkhallError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Record not found"


class ConflictError(InkhallError):
    """Business rule violation: capacity, overlap, hours, duplicates, state."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Request conflicts with current state"


def _body(message: str, errors: list[dict] | None = None) -> dict:
    body = {"message": message}
    if errors:
        body["errors"] = errors
    return body


async def inkhall_error_handler(request: Request, exc: InkhallError) -> JSONResponse:
    logger.info(
        "%s %s rejected (%s): %s", request.method, request.url.path, exc.status_code, exc.message
    )
    headers = None
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(exc.message, exc.errors),
        headers=headers,
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = []
    for err in exc.errors():
        # drop the "body"/"query" location prefix
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_body("Validation failed", errors),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=_body(message),
        headers=getattr(exc, "headers", None),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=_body("Record already exists, please check the input"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.DEBUG else "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_body(message),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InkhallError, inkhall_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
