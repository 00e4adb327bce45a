"""
app/config.py - Pydantic BaseSettings configuration
Every value is optional and sourced from the environment (or a local .env).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ────────────────────────────────────────────────────────────
    environment: str = "development"
    port: int = 8080
    log_level: str = "info"
    service_name: str = "Portfolio Backend API"
    service_version: str = "1.0.0"

    # ── CORS ───────────────────────────────────────────────────────────────────
    # "*" or a comma-separated list of origins
    allowed_origins: str = "*"

    # ── Rate limiting (general policy) ─────────────────────────────────────────
    rate_limit_window_ms: int = 900_000
    rate_limit_max_requests: int = 100

    # ── Caching ────────────────────────────────────────────────────────────────
    cache_control_max_age: int = 3600
    cdn_cache_max_age: int = 86400

    # ── Contact form ───────────────────────────────────────────────────────────
    contact_email: str = ""
    recaptcha_secret_key: Optional[str] = None
    recaptcha_min_score: float = 0.5

    # ── Google Cloud Storage ───────────────────────────────────────────────────
    gcp_project_id: str = ""
    gcp_region: str = "us-central1"
    gcs_bucket_name: str = ""
    signed_url_ttl_seconds: int = 3600

    # ── Request handling / lifecycle ───────────────────────────────────────────
    max_body_bytes: int = 10 * 1024 * 1024
    shutdown_timeout_seconds: int = 10

    @field_validator("environment")
    @classmethod
    def validate_env(cls, v: str) -> str:
        allowed = {"development", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @property
    def allowed_origins_list(self) -> list[str]:
        if not self.allowed_origins.strip():
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        return self.environment == "testing"


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance. Use this everywhere."""
    return Settings()
