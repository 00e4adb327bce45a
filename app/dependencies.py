"""
app/dependencies.py - Shared dependencies
Collaborators are built once in create_app() and kept on app.state; handlers
receive them through Depends() instead of importing module singletons.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from app.clients.storage_client import StorageClient
from app.config import Settings
from app.core.errors import RateLimitExceeded
from app.core import logging as app_logging
from app.core.rate_limiter import FixedWindowRateLimiter, client_key, contact_policy
from app.services.contact import ContactService
from app.services.portfolio import PortfolioService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageClient:
    return request.app.state.storage


def get_portfolio_service(request: Request) -> PortfolioService:
    return request.app.state.portfolio


def get_contact_service(request: Request) -> ContactService:
    return request.app.state.contact


def get_rate_limiter(request: Request) -> FixedWindowRateLimiter:
    return request.app.state.rate_limiter


def enforce_contact_limit(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    limiter: Annotated[FixedWindowRateLimiter, Depends(get_rate_limiter)],
) -> None:
    """Contact-form policy (stricter than the general one). Off in test mode."""
    if settings.is_testing:
        return
    policy = contact_policy()
    key = client_key(request)
    decision = limiter.check(key, policy)
    if not decision.allowed:
        app_logging.log_rate_limited(policy.name, key, request.url.path, decision.retry_after_ms)
        raise RateLimitExceeded(
            "Too many contact form submissions, please try again later.",
            retry_after_ms=decision.retry_after_ms,
            policy=policy.name,
        )


SettingsDep = Annotated[Settings, Depends(get_app_settings)]
StorageDep = Annotated[StorageClient, Depends(get_storage)]
PortfolioDep = Annotated[PortfolioService, Depends(get_portfolio_service)]
ContactDep = Annotated[ContactService, Depends(get_contact_service)]
