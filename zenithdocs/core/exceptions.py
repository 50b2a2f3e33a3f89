"""
Typed application errors and the global exception handlers that render them.

Every error carries its HTTP status and a machine-readable code from the point
where it is raised; the handlers below are the only place that turns errors
into ``{"success": false, "message": ..., "code": ...}`` responses.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException

from zenithdocs.core.config import settings

logger = logging.getLogger(__name__)


# ── Error taxonomy ──────────────────────────────────────────────────
class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        self.message = message or self.message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Invalid request"


class ConflictError(AppError):
    """Duplicate resource. Reported as 400 to match the registration contract."""

    status_code = 400
    code = "CONFLICT"
    message = "Resource already exists"


class SessionConflictError(AppError):
    """Lost a compare-and-swap on the refresh fingerprint."""

    status_code = 409
    code = "SESSION_CONFLICT"
    message = "Session was updated concurrently, please retry"


class UnauthenticatedError(AppError):
    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Unauthorized access"

    @property
    def headers(self) -> dict[str, str] | None:
        return {"WWW-Authenticate": "Bearer"}


class InvalidCredentialsError(UnauthenticatedError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"


class TokenExpiredError(UnauthenticatedError):
    code = "TOKEN_EXPIRED"
    message = "Token has expired"


class TokenInvalidError(UnauthenticatedError):
    code = "TOKEN_INVALID"
    message = "Invalid token"


class RefreshTokenMismatchError(UnauthenticatedError):
    code = "REFRESH_TOKEN_MISMATCH"
    message = "Refresh token mismatch"


class ApiKeyError(UnauthenticatedError):
    code = "API_KEY_INVALID"
    message = "Unauthorized access"

    @property
    def headers(self) -> dict[str, str] | None:
        return None


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    message = "You are not authorized to access this resource"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class InternalError(AppError):
    pass


# ── Rendering ───────────────────────────────────────────────────────
def _envelope(message: str, code: str, **extra: Any) -> dict[str, Any]:
    return {"success": False, "message": message, "code": code, **extra}


async def _app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Application error: %s", exc.message, exc_info=exc)
        return await _generic_exception_handler(_request, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(exc.message, exc.code),
        headers=exc.headers,
    )


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(str(exc.detail), "HTTP_ERROR"),
        headers=getattr(exc, "headers", None),
    )


async def _request_validation_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = ValidationError.message
    return JSONResponse(
        status_code=400,
        content=_envelope(message, ValidationError.code),
    )


async def _rate_limit_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content=_envelope(f"Rate limit exceeded: {exc.detail}", "RATE_LIMITED"),
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content=_envelope("Database constraint violation", "CONFLICT"),
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return await _generic_exception_handler(_request, exc)


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    if not isinstance(exc, (AppError, SQLAlchemyError)):
        logger.exception("Unhandled exception: %s", exc)
    extra: dict[str, Any] = {}
    if settings.is_development:
        extra["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return JSONResponse(
        status_code=500,
        content=_envelope("Internal Server Error", InternalError.code, **extra),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(AppError, _app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
