"""
app/core/logging.py - loguru logging setup and structured log helpers
Production output is one JSON object per line on stdout (Cloud Logging picks it up).
"""
from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger

_HUMAN_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan> - <level>{message}</level>"
)


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure loguru with a single stdout sink.
    json_logs=True uses loguru's built-in serialization; otherwise a colourised
    human-readable format is used for local development.
    """
    logger.remove()

    if json_logs:
        logger.add(
            sys.stdout,
            level=log_level.upper(),
            format="{message}",
            serialize=True,
            backtrace=True,
            diagnose=False,
            colorize=False,
        )
    else:
        logger.add(
            sys.stdout,
            level=log_level.upper(),
            format=_HUMAN_FORMAT,
            backtrace=True,
            diagnose=False,
            colorize=True,
        )


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-01-01T00:00:00.000Z"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _build_log_record(
    component: str,
    operation: str,
    extra: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Build a base structured log record."""
    record: dict[str, Any] = {
        "timestamp": utc_timestamp(),
        "component": component,
        "operation": operation,
    }
    if extra:
        record.update(extra)
    return record


def request_log_level(status_code: int) -> str:
    """Map a response status to the severity it is logged at."""
    if status_code >= 500:
        return "ERROR"
    if status_code >= 400:
        return "WARNING"
    return "INFO"


# ──────────────────────────────────────────────────────────────────────────────
# Log event helpers
# ──────────────────────────────────────────────────────────────────────────────

def log_request(
    method: str,
    path: str,
    status_code: int,
    latency_ms: float,
    client: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> None:
    """One line per completed HTTP request."""
    record = _build_log_record("http", "request", {
        "method": method,
        "path": path,
        "status_code": status_code,
        "latency_ms": round(latency_ms, 2),
        "client": client,
        "user_agent": user_agent,
    })
    logger.log(request_log_level(status_code), json.dumps(record))


def log_storage_operation(
    filename: str,
    operation: str,
    success: bool,
    latency_ms: float,
    error: Optional[str] = None,
) -> None:
    """Every object-storage call is logged."""
    record = _build_log_record("storage_client", operation, {
        "filename": filename,
        "success": success,
        "latency_ms": round(latency_ms, 2),
        "error": error,
    })
    if success:
        logger.info(json.dumps(record))
    else:
        logger.error(json.dumps(record))


def log_rate_limited(policy: str, client: str, path: str, retry_after_ms: int) -> None:
    record = _build_log_record("rate_limiter", "deny", {
        "policy": policy,
        "client": client,
        "path": path,
        "retry_after_ms": retry_after_ms,
    })
    logger.warning(json.dumps(record))


def log_error(
    component: str,
    operation: str,
    error: BaseException,
    context: Optional[dict[str, Any]] = None,
    status_code: int = 500,
) -> None:
    """Errors are logged with context. Client errors (4xx) go out as warnings."""
    record = _build_log_record(component, operation, {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "status_code": status_code,
        "context": context or {},
    })
    if status_code >= 500:
        logger.opt(exception=error).error(json.dumps(record))
    else:
        logger.warning(json.dumps(record))
