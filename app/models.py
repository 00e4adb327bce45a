"""
app/models.py - Pydantic data schemas
Request/response bodies use the camelCase keys the frontend already speaks.
"""
from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# ──────────────────────────────────────────────────────────────────────────────
# Contact form
# ──────────────────────────────────────────────────────────────────────────────

class FieldError(BaseModel):
    field: str
    message: str


class ValidationResult(BaseModel):
    """Every failing rule, in rule order. Empty means accepted."""
    errors: list[FieldError] = []

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self.errors]

    @property
    def failed_fields(self) -> list[str]:
        seen: list[str] = []
        for e in self.errors:
            if e.field not in seen:
                seen.append(e.field)
        return seen


class ContactSubmission(BaseModel):
    """A submission that passed validation: trimmed, email lowercased."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    email: str
    subject: str
    message: str
    recaptcha_token: Optional[str] = Field(default=None, alias="recaptchaToken")
    phone: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ContactResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: str


# ──────────────────────────────────────────────────────────────────────────────
# Portfolio
# ──────────────────────────────────────────────────────────────────────────────

class PortfolioResponse(BaseModel):
    success: bool = True
    data: dict[str, Any]
    timestamp: str


class SectionResponse(BaseModel):
    success: bool = True
    section: str
    data: Any
    timestamp: str


# ──────────────────────────────────────────────────────────────────────────────
# Assets
# ──────────────────────────────────────────────────────────────────────────────

class UploadRequest(BaseModel):
    filename: Optional[str] = None
    content_type: Optional[str] = Field(default=None, alias="contentType")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UploadResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    signed_url: str = Field(alias="signedUrl")
    expires_in: int = Field(alias="expiresIn")


class StoredFile(BaseModel):
    name: str
    size: int = 0
    updated: str


class AssetUrlResponse(BaseModel):
    success: bool = True
    url: str


class AssetListResponse(BaseModel):
    success: bool = True
    files: list[StoredFile]
    count: int


# ──────────────────────────────────────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────────────────────────────────────

class MemoryUsage(BaseModel):
    used: int
    total: int


class HealthResponse(BaseModel):
    status: str = "healthy"
    uptime: int
    timestamp: str
    memory: MemoryUsage
