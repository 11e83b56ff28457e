"""
Error taxonomy and the centralized error-to-response translation.

Every failure leaves the API as ``{"status_code": int, "message": str}``
(validation failures add a ``details`` list).  Repository and service code
raise the ``MarketError`` subclasses below or let store errors bubble; the
routers re-tag store errors with ``translate_store_errors``.
"""
import logging
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# SQLSTATE for unique_violation (PostgreSQL / asyncpg).
_PG_UNIQUE_VIOLATION = "23505"


class MarketError(Exception):
    """Base exception for every error the API reports to its clients."""

    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, details: list[Any] | None = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status_code": self.status_code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(MarketError):
    """Disallowed field name, missing required field or schema constraint."""

    status_code = 400
    default_message = "The request cannot or will not be processed due to something that is perceived to be a client error."


class UnauthorizedError(MarketError):
    """Bad credentials, or a missing, malformed or expired bearer token."""

    status_code = 401
    default_message = "Access token invalid or not provided."


class NotFoundError(MarketError):
    status_code = 404
    default_message = "The requested resource was not found."


class ConflictError(MarketError):
    """A unique key (e.g. member email, location city) is already taken."""

    status_code = 409
    default_message = "The resource already exists."


# ---------------------------------------------------------------------------
# Store error translation
# ---------------------------------------------------------------------------

def is_duplicate_key(exc: IntegrityError) -> bool:
    """Return True when *exc* reports a unique-constraint violation."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _PG_UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(orig) or "duplicate key" in str(orig)


@contextmanager
def translate_store_errors(conflict_message: str | None = None) -> Iterator[None]:
    """
    Re-tag integrity errors raised by the document store while the block runs.

    Duplicate unique keys become ``ConflictError`` (409); any other integrity
    failure, such as a missing required column, becomes ``ValidationError``.
    """
    try:
        yield
    except IntegrityError as exc:
        if is_duplicate_key(exc):
            raise ConflictError(conflict_message) from exc
        raise ValidationError() from exc


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

async def market_error_handler(request: Request, exc: MarketError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(details=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"status_code": exc.status_code, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = MarketError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MarketError, market_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
