"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Provides:
    • Domain-specific exception classes
    • Consistent JSON error response format
    • Automatic logging of unhandled errors
    • Request context in error responses (non-production)

Notification delivery problems are NOT part of this hierarchy: they are
converted to DispatchOutcome values inside backend.app.notifications and
never surface as HTTP errors (see notifications/errors.py).

Usage:
    from backend.app.core.errors import NotFoundError, register_error_handlers

    raise NotFoundError("Device", id="c0ffee")
"""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class LostFoundAPIError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        self.headers = headers or {}


class NotFoundError(LostFoundAPIError):
    """Resource not found (404)."""

    def __init__(self, resource: str, **identifiers: Any):
        details = {"resource": resource, **identifiers}
        super().__init__(
            message=f"{resource} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details=details,
        )


class ValidationError(LostFoundAPIError):
    """Input validation failed (400)."""

    def __init__(self, message: str, *, field: Optional[str] = None, **details: Any):
        d = {**details}
        if field:
            d["field"] = field
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=d,
        )


class CaptchaError(LostFoundAPIError):
    """Captcha token rejected by the verification service (400)."""

    def __init__(self, message: str = "Captcha verification failed"):
        super().__init__(
            message=message,
            status_code=400,
            error_code="CAPTCHA_FAILED",
        )


class RateLimitError(LostFoundAPIError):
    """Rate limit exceeded (429)."""

    def __init__(
        self,
        message: str = "Too many requests",
        retry_after: int = 60,
        *,
        remaining: int = 0,
        reset_at: Optional[float] = None,
    ):
        headers = {
            "Retry-After": str(retry_after or 60),
            "X-RateLimit-Remaining": str(remaining),
        }
        if reset_at is not None:
            headers["X-RateLimit-Reset"] = str(int(reset_at * 1000))
        super().__init__(
            message=message,
            status_code=429,
            error_code="RATE_LIMIT_EXCEEDED",
            details={"retry_after_seconds": retry_after},
            headers=headers,
        )


class NotificationTestError(LostFoundAPIError):
    """
    A test notification failed (400).

    The reason is returned verbatim so the endpoint owner can diagnose a
    misconfigured descriptor. This is the only path by which a dispatch
    failure reason reaches an HTTP client.
    """

    def __init__(self, reason: str, *, endpoint_id: str):
        super().__init__(
            message=reason,
            status_code=400,
            error_code="NOTIFICATION_TEST_FAILED",
            details={"endpoint_id": endpoint_id},
        )


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def error_body(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> Dict[str, Any]:
    """``{"error": {code, message, status[, details][, path, method]}}``"""
    error: Dict[str, Any] = {"code": error_code, "message": message, "status": status_code}
    if details:
        error["details"] = details
    if request is not None and not settings.is_production:
        error["path"] = request.url.path
        error["method"] = request.method
    return {"error": error}


def _respond(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(status_code, error_code, message, details, request),
        headers=headers or None,
    )


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """
    Install handlers so every error, including malformed request bodies,
    is returned in the same envelope.
    """

    @app.exception_handler(LostFoundAPIError)
    async def handle_app_error(request: Request, exc: LostFoundAPIError):
        logger.log(
            logging.WARNING if exc.status_code < 500 else logging.ERROR,
            "%s %s → %d %s: %s",
            request.method, request.url.path, exc.status_code, exc.error_code, exc.message,
        )
        return _respond(
            exc.status_code, exc.error_code, exc.message, exc.details, request, exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = [
            ".".join(str(part) for part in err.get("loc", ()) if part != "body")
            for err in exc.errors()
        ]
        return _respond(
            400, "VALIDATION_ERROR", "Invalid request body",
            {"fields": [f for f in fields if f]}, request,
        )

    @app.exception_handler(ValueError)
    async def handle_value_error(request: Request, exc: ValueError):
        logger.warning("ValueError on %s: %s", request.url.path, exc)
        return _respond(422, "VALIDATION_ERROR", str(exc), request=request)

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical(
            "Unhandled exception on %s %s", request.method, request.url.path,
            exc_info=exc,
        )
        details = None
        if settings.DEBUG:
            details = {"traceback": traceback.format_exception(type(exc), exc, exc.__traceback__)}
        return _respond(
            500, "INTERNAL_ERROR",
            str(exc) if settings.DEBUG else "Internal server error",
            details, request,
        )
