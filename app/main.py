"""
app/main.py - FastAPI application entry point
Includes: lifespan management, security headers, CORS, body ceiling, request
logging, rate limiting, error responder and the route modules.
"""

from contextlib import asynccontextmanager
import asyncio
import os
import sys
from typing import Any, AsyncIterator, Optional

from fastapi import FastAPI
from loguru import logger

from app.clients.storage_client import StorageClient
from app.config import Settings, get_settings
from app.core.errors import register_exception_handlers
from app.core.logging import setup_logging, utc_timestamp
from app.core.middleware import install_middleware
from app.core.rate_limiter import (
    Clock,
    FixedWindowRateLimiter,
    RateWindowStore,
    general_policy,
)
from app.routers import assets, contact, health, portfolio
from app.services.contact import ContactService
from app.services.portfolio import PortfolioService


# ──────────────────────────────────────────────────────────────────────────────
# Fatal fault handling - log, then exit non-zero
# ──────────────────────────────────────────────────────────────────────────────

def _on_loop_fault(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
    exc = context.get("exception")
    logger.opt(exception=exc).critical(f"Unhandled fault in event loop: {context.get('message')}")
    os._exit(1)


def _on_uncaught(exc_type, exc, tb) -> None:
    logger.opt(exception=(exc_type, exc, tb)).critical("Uncaught exception")
    sys.exit(1)


# ──────────────────────────────────────────────────────────────────────────────
# Application Lifespan
# ──────────────────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, json_logs=settings.is_production)

    if not settings.is_testing:
        asyncio.get_running_loop().set_exception_handler(_on_loop_fault)
        sys.excepthook = _on_uncaught

    logger.info(
        f"Server started: environment={settings.environment} port={settings.port} "
        f"origins={settings.allowed_origins_list}"
    )
    yield
    logger.info("Shutting down: HTTP server closed")


# ──────────────────────────────────────────────────────────────────────────────
# FastAPI App
# ──────────────────────────────────────────────────────────────────────────────

def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageClient] = None,
    rate_store: Optional[RateWindowStore] = None,
    clock: Optional[Clock] = None,
    portfolio_service: Optional[PortfolioService] = None,
    contact_service: Optional[ContactService] = None,
) -> FastAPI:
    """Build the application. Collaborators default to the production ones."""
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.service_name,
        description="Portfolio content, contact form and asset URLs.",
        version=settings.service_version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    limiter = FixedWindowRateLimiter(store=rate_store, clock=clock)
    app.state.settings = settings
    app.state.rate_limiter = limiter
    app.state.storage = storage or StorageClient(settings)
    app.state.portfolio = portfolio_service or PortfolioService()
    app.state.contact = contact_service or ContactService(settings)
    app.state.readiness_probes = dict(health.DEFAULT_READINESS_PROBES)

    install_middleware(
        app,
        settings,
        limiter,
        general_policy(settings.rate_limit_window_ms, settings.rate_limit_max_requests),
    )
    register_exception_handlers(app)

    # ── Routers ───────────────────────────────────────────────────────────────
    app.include_router(health.router, tags=["health"])
    app.include_router(portfolio.router, prefix="/api/portfolio", tags=["portfolio"])
    app.include_router(contact.router, prefix="/api/contact", tags=["contact"])
    app.include_router(assets.router, prefix="/api/assets", tags=["assets"])

    @app.get("/", tags=["meta"])
    async def root() -> dict[str, Any]:
        return {
            "name": settings.service_name,
            "version": settings.service_version,
            "status": "running",
            "timestamp": utc_timestamp(),
            "endpoints": {
                "health": "/health",
                "portfolio": "/api/portfolio",
                "contact": "/api/contact",
                "assets": "/api/assets",
            },
        }

    return app


app = create_app()


def run() -> None:
    """Serve with uvicorn; SIGTERM/SIGINT drain in-flight requests, then force exit."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.port,
        proxy_headers=True,
        forwarded_allow_ips="*",
        timeout_graceful_shutdown=settings.shutdown_timeout_seconds,
        log_config=None,
    )
