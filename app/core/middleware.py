"""
app/core/middleware.py - Request guards applied ahead of route dispatch
Order (outermost first): trailing-slash normalization -> security headers -> CORS
-> body ceiling -> request logging -> general rate limiting -> unhandled-error
boundary. install_middleware() registers them so that Starlette's
last-added-runs-first rule produces exactly that order.
"""
from __future__ import annotations

import time

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.config import Settings
from app.core import logging as app_logging
from app.core.errors import (
    RateLimitExceeded,
    api_error_response,
    error_response,
    unhandled_exception_handler,
)
from app.core.rate_limiter import (
    EXEMPT_PATHS,
    FixedWindowRateLimiter,
    RatePolicy,
    client_key,
)

CONTENT_SECURITY_POLICY = "; ".join([
    "default-src 'self'",
    "style-src 'self' 'unsafe-inline'",
    "script-src 'self'",
    "img-src 'self' data: https:",
    "connect-src 'self'",
    "font-src 'self'",
    "object-src 'none'",
    "media-src 'self'",
    "frame-src 'none'",
])

SECURITY_HEADERS = {
    "Content-Security-Policy": CONTENT_SECURITY_POLICY,
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains; preload",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "0",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
}

# Probe endpoints are not request-logged
UNLOGGED_PATHS = frozenset({"/health", "/health/liveness"})


class TrailingSlashMiddleware:
    """Routes `/x/` as `/x`; `/` itself is left alone."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            path = scope["path"]
            if len(path) > 1 and path.endswith("/"):
                scope = dict(scope)
                scope["path"] = path.rstrip("/") or "/"
                raw_path = scope.get("raw_path")
                if raw_path:
                    scope["raw_path"] = raw_path.rstrip(b"/") or b"/"
        await self.app(scope, receive, send)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


class BodySizeLimitMiddleware:
    """
    Caps request bodies at max_body_bytes with a 413.
    A declared Content-Length is checked up front; bodies without one (chunked)
    are counted as they stream and cut off once the count passes the cap.
    """

    def __init__(self, app: ASGIApp, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    def _too_large(self, method: str, path: str, size: int) -> str:
        logger.warning(f"Rejected oversized body ({size} bytes) on {method} {path}")
        return f"Request body exceeds {self.max_body_bytes} bytes"

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method, path = scope["method"], scope["path"]
        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None:
            try:
                declared = int(content_length)
            except ValueError:
                response = error_response(400, "Bad Request", "Invalid Content-Length header")
                await response(scope, receive, send)
                return
            if declared > self.max_body_bytes:
                message = self._too_large(method, path, declared)
                await error_response(413, "Payload Too Large", message)(scope, receive, send)
                return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    # Re-raised by FastAPI's body reader, answered by the HTTP error handler
                    raise HTTPException(413, detail=self._too_large(method, path, received))
            return message

        await self.app(scope, limited_receive, send)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        app_logging.log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            latency_ms=(time.perf_counter() - started) * 1000,
            client=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """General per-client policy. Health endpoints and CORS preflights are exempt."""

    def __init__(self, app, limiter: FixedWindowRateLimiter, policy: RatePolicy):
        super().__init__(app)
        self.limiter = limiter
        self.policy = policy

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        key = client_key(request)
        decision = self.limiter.check(key, self.policy)
        if not decision.allowed:
            app_logging.log_rate_limited(
                self.policy.name, key, request.url.path, decision.retry_after_ms
            )
            exc = RateLimitExceeded(
                "Too many requests from this IP, please try again later.",
                retry_after_ms=decision.retry_after_ms,
                policy=self.policy.name,
            )
            return api_error_response(exc)

        response = await call_next(request)
        response.headers["RateLimit-Limit"] = str(decision.limit)
        response.headers["RateLimit-Remaining"] = str(decision.remaining)
        return response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Unexpected exceptions become the generic 500 here, inside the chain.
    Outer stages (headers, CORS, request log) see it as an ordinary response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return await unhandled_exception_handler(request, exc)


def install_middleware(
    app: FastAPI,
    settings: Settings,
    limiter: FixedWindowRateLimiter,
    policy: RatePolicy,
) -> None:
    origins = settings.allowed_origins_list
    allow_all = "*" in origins

    # Innermost first
    app.add_middleware(UnhandledErrorMiddleware)
    app.add_middleware(RateLimitMiddleware, limiter=limiter, policy=policy)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else origins,
        # Browsers reject credentialed responses with a wildcard origin
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(TrailingSlashMiddleware)
