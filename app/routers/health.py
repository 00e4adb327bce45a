"""
app/routers/health.py - Health, liveness and readiness probes
Public, never rate limited. Liveness does no dependency checks at all.
"""
from __future__ import annotations

import os
import resource
import sys
import time
from typing import Any, Callable

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from loguru import logger

from app.core.logging import utc_timestamp
from app.models import HealthResponse, MemoryUsage

router = APIRouter()

_STARTED_AT = time.monotonic()

ReadinessProbe = Callable[[], bool]


def stub_probe() -> bool:
    """Placeholder probe: always healthy. Replace with a real check per dependency."""
    return True


DEFAULT_READINESS_PROBES: dict[str, ReadinessProbe] = {
    "database": stub_probe,
    "storage": stub_probe,
}


def _current_rss_bytes(statm_path: str = "/proc/self/statm") -> int:
    """Resident set size right now; falls back to the peak where /proc is absent."""
    try:
        with open(statm_path) as fh:
            resident_pages = int(fh.read().split()[1])
        return resident_pages * os.sysconf("SC_PAGE_SIZE")
    except (OSError, ValueError, IndexError, AttributeError):
        # ru_maxrss is the peak, in KiB on Linux and bytes on macOS
        rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
        return rss if sys.platform == "darwin" else rss * 1024


def _memory_usage_mb() -> MemoryUsage:
    rss_bytes = _current_rss_bytes()
    try:
        total_bytes = os.sysconf("SC_PAGE_SIZE") * os.sysconf("SC_PHYS_PAGES")
    except (ValueError, OSError, AttributeError):
        total_bytes = rss_bytes
    return MemoryUsage(
        used=round(rss_bytes / 1024 / 1024),
        total=round(total_bytes / 1024 / 1024),
    )


@router.get("/health/liveness")
async def liveness() -> dict[str, str]:
    return {"status": "alive"}


@router.get("/health/readiness")
async def readiness(request: Request) -> JSONResponse:
    """200 with per-dependency checks when every probe passes, else 503."""
    probes: dict[str, ReadinessProbe] = getattr(
        request.app.state, "readiness_probes", DEFAULT_READINESS_PROBES
    )
    checks: dict[str, Any] = {}
    ready = True
    for name, probe in probes.items():
        try:
            ok = bool(probe())
        except Exception as exc:
            logger.warning(f"Readiness probe {name!r} raised: {exc}")
            ok = False
        checks[name] = "ok" if ok else "failed"
        ready = ready and ok

    if ready:
        return JSONResponse(
            status_code=200,
            content={"status": "ready", "timestamp": utc_timestamp(), "checks": checks},
        )
    logger.warning(f"Readiness check failed: {checks}")
    return JSONResponse(
        status_code=503,
        content={"status": "not ready", "timestamp": utc_timestamp(), "checks": checks},
    )


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        uptime=int(time.monotonic() - _STARTED_AT),
        timestamp=utc_timestamp(),
        memory=_memory_usage_mb(),
    )
