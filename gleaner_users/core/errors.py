"""Service-level exceptions and their rendering as `{"message": ...}` responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class UsersApiError(Exception):
    """Base exception for the users API; carries the HTTP status it maps to."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(UsersApiError):
    """Referenced user, role or application does not exist."""


class ConflictError(UsersApiError):
    """Duplicate username, email, application name or prefix."""


class ValidationError(UsersApiError):
    """Malformed input that passed schema validation (e.g. unknown role)."""


class UnauthorizedError(UsersApiError):
    """Missing, invalid or revoked credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(UsersApiError):
    """Authenticated but not permitted."""

    status_code = status.HTTP_403_FORBIDDEN


class TooManyAttemptsError(UsersApiError):
    """Login throttled after repeated failures."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class AclStoreError(UsersApiError):
    """The ACL store could not be read or written."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def _message_from_validation(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request."
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    msg = first.get("msg", "Invalid value")
    return f"{loc}: {msg}" if loc else msg


async def users_api_error_handler(request: Request, exc: UsersApiError) -> JSONResponse:
    if isinstance(exc, AclStoreError):
        logger.error("ACL store failure on %s %s: %s", request.method, request.url.path, exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message},
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": _message_from_validation(exc)},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal server error."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error as `{"message": ...}` with the matching status."""
    app.add_exception_handler(UsersApiError, users_api_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
