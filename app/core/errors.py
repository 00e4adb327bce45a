"""
app/core/errors.py - Error taxonomy and the single error responder
Handlers raise ApiError subclasses; the exception handlers registered here are the
only place that decides the HTTP status and JSON shape of a failure.
"""
from __future__ import annotations

import math
from http import HTTPStatus
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core import logging as app_logging
from app.core.logging import utc_timestamp


class ApiError(Exception):
    """Base for every failure that carries its own HTTP status."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "error": self.error,
            "message": self.message,
            "timestamp": utc_timestamp(),
        }
        body.update(self.details)
        return body

    def headers(self) -> Optional[dict[str, str]]:
        return None


class ValidationFailed(ApiError):
    """User-correctable input; carries every failing message, not just the first."""

    status_code = 400
    error = "Bad Request"

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)

    def to_dict(self) -> dict[str, Any]:
        return {"errors": self.errors, "timestamp": utc_timestamp()}


class BadRequest(ApiError):
    """Single-message 400 in the {success: false, error} shape."""

    status_code = 400
    error = "Bad Request"

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "success": False,
            "error": self.message,
            "timestamp": utc_timestamp(),
        }
        body.update(self.details)
        return body


class InvalidSection(BadRequest):
    def __init__(self, section: str, valid_sections: list[str]):
        super().__init__(
            "Invalid section",
            details={"validSections": list(valid_sections)},
        )
        self.section = section


class NotFound(ApiError):
    status_code = 404
    error = "Not Found"


class RateLimitExceeded(ApiError):
    status_code = 429
    error = "Too Many Requests"

    def __init__(self, message: str, retry_after_ms: int, policy: str = ""):
        super().__init__(message)
        self.retry_after_ms = retry_after_ms
        self.policy = policy

    @property
    def retry_after(self) -> int:
        """Whole seconds until the window resets."""
        return max(1, math.ceil(self.retry_after_ms / 1000))

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.message,
            "retryAfter": self.retry_after,
            "timestamp": utc_timestamp(),
        }

    def headers(self) -> Optional[dict[str, str]]:
        return {"Retry-After": str(self.retry_after)}


class UpstreamFailure(ApiError):
    """Object storage or another external collaborator failed."""

    status_code = 502
    error = "Bad Gateway"


# ──────────────────────────────────────────────────────────────────────────────
# Responder
# ──────────────────────────────────────────────────────────────────────────────

def error_response(
    status_code: int,
    error: str,
    message: str,
    headers: Optional[dict[str, str]] = None,
    **extra: Any,
) -> JSONResponse:
    """Uniform JSON error body: {error, message, timestamp, ...extra}."""
    content: dict[str, Any] = {
        "error": error,
        "message": message,
        "timestamp": utc_timestamp(),
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def api_error_response(exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers(),
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    app_logging.log_error(
        "error_responder",
        f"{request.method} {request.url.path}",
        exc,
        status_code=exc.status_code,
    )
    return api_error_response(exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown method on a known path is answered like an unknown path
    if exc.status_code in (404, 405):
        return error_response(
            404,
            "Not Found",
            f"Cannot {request.method} {request.url.path}",
        )
    app_logging.log_error(
        "error_responder",
        f"{request.method} {request.url.path}",
        exc,
        status_code=exc.status_code,
    )
    return error_response(
        exc.status_code,
        _reason(exc.status_code),
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and bad parameters are client errors (400, not 422)."""
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    app_logging.log_error(
        "error_responder",
        f"{request.method} {request.url.path}",
        exc,
        status_code=400,
    )
    return JSONResponse(
        status_code=400,
        content={"errors": messages, "timestamp": utc_timestamp()},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected: log with traceback, answer 500 without internals."""
    app_logging.log_error(
        "error_responder",
        f"{request.method} {request.url.path}",
        exc,
        status_code=500,
    )
    return error_response(500, "Internal Server Error", "An unexpected error occurred.")


# Phrases that differ across Python versions are pinned
_REASONS = {413: "Payload Too Large"}


def _reason(status_code: int) -> str:
    if status_code in _REASONS:
        return _REASONS[status_code]
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
