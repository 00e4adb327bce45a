"""
app/routers/assets.py - Asset URL issuance in front of the GCS bucket
Storage errors are not caught here; they reach the error responder as 5xx.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Response

from app.core.errors import BadRequest
from app.dependencies import SettingsDep, StorageDep
from app.models import AssetListResponse, AssetUrlResponse, UploadRequest, UploadResponse

router = APIRouter()


@router.post("/upload", response_model=UploadResponse, response_model_by_alias=True)
def request_upload_url(
    storage: StorageDep,
    settings: SettingsDep,
    body: Optional[UploadRequest] = Body(None),
) -> UploadResponse:
    """Signed PUT URL for a direct browser-to-bucket upload."""
    if body is None or not body.filename or not body.content_type:
        raise BadRequest("Filename and contentType are required")

    expires_in = settings.signed_url_ttl_seconds
    signed_url = storage.generate_signed_upload_url(body.filename, body.content_type, expires_in)
    return UploadResponse(signed_url=signed_url, expires_in=expires_in)


@router.get("/{filename}", response_model=AssetUrlResponse)
def get_asset_url(filename: str, response: Response, storage: StorageDep, settings: SettingsDep) -> AssetUrlResponse:
    response.headers["Cache-Control"] = f"public, max-age={settings.cdn_cache_max_age}"
    return AssetUrlResponse(url=storage.get_public_url(filename))


@router.get("", response_model=AssetListResponse)
def list_assets(storage: StorageDep, prefix: str = "") -> AssetListResponse:
    files = storage.list_files(prefix)
    return AssetListResponse(files=files, count=len(files))
