"""
app/routers/portfolio.py - Portfolio content endpoints
Responses are cacheable: browser TTL and CDN TTL come from settings.
"""
from __future__ import annotations

from fastapi import APIRouter, Response

from app.config import Settings
from app.core.errors import InvalidSection
from app.core.logging import utc_timestamp
from app.dependencies import PortfolioDep, SettingsDep
from app.models import PortfolioResponse, SectionResponse
from app.services.portfolio import VALID_SECTIONS

router = APIRouter()


def _set_cache_headers(response: Response, settings: Settings) -> None:
    response.headers["Cache-Control"] = f"public, max-age={settings.cache_control_max_age}"
    response.headers["CDN-Cache-Control"] = f"public, max-age={settings.cdn_cache_max_age}"


@router.get("", response_model=PortfolioResponse)
async def get_portfolio(
    response: Response,
    portfolio: PortfolioDep,
    settings: SettingsDep,
) -> PortfolioResponse:
    _set_cache_headers(response, settings)
    return PortfolioResponse(data=portfolio.get_portfolio(), timestamp=utc_timestamp())


@router.get("/{section}", response_model=SectionResponse)
async def get_section(
    section: str,
    response: Response,
    portfolio: PortfolioDep,
    settings: SettingsDep,
) -> SectionResponse:
    if not portfolio.is_valid_section(section):
        raise InvalidSection(section, list(VALID_SECTIONS))

    _set_cache_headers(response, settings)
    return SectionResponse(
        section=section,
        data=portfolio.get_section(section),
        timestamp=utc_timestamp(),
    )
