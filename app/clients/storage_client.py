"""
app/clients/storage_client.py - Google Cloud Storage client
Signed upload/download URLs, public URLs, listing and object CRUD for the asset
bucket. The underlying google-cloud-storage client is built on first use, so the
service starts (and serves non-asset routes) without GCP credentials.
"""
from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Optional

from google.auth.credentials import Signing
from google.auth.exceptions import DefaultCredentialsError
from google.auth.transport.requests import Request as GoogleRequest
from google.cloud import storage
from loguru import logger

from app.config import Settings
from app.core import logging as app_logging
from app.core.errors import UpstreamFailure
from app.models import StoredFile

PUBLIC_URL_BASE = "https://storage.googleapis.com"


class StorageClient:
    def __init__(self, settings: Settings, client: Optional[storage.Client] = None):
        self.settings = settings
        self.bucket_name = settings.gcs_bucket_name
        self._client = client
        self._bucket: Optional[storage.Bucket] = None
        if not self.bucket_name:
            logger.warning("GCS bucket name not configured; asset routes will fail")

    # ──────────────────────────────────────────────────────────────────────────
    # Client / bucket
    # ──────────────────────────────────────────────────────────────────────────

    def _get_bucket(self) -> storage.Bucket:
        if self._bucket is not None:
            return self._bucket
        if not self.bucket_name:
            raise UpstreamFailure("Storage bucket is not configured", status_code=503)
        if self._client is None:
            try:
                self._client = storage.Client(project=self.settings.gcp_project_id or None)
            except DefaultCredentialsError as exc:
                logger.error(f"Could not build GCS client: {exc}")
                raise UpstreamFailure("Storage credentials unavailable", status_code=503) from exc
        self._bucket = self._client.bucket(self.bucket_name)
        return self._bucket

    def _signing_kwargs(self) -> dict[str, str]:
        """
        Extra generate_signed_url arguments for credentials without a private key.
        Cloud Run and GCE metadata credentials sign through the IAM signBlob API,
        which needs the service account email and a fresh access token.
        """
        credentials = getattr(self._client, "_credentials", None)
        if credentials is None or isinstance(credentials, Signing):
            return {}
        if not credentials.valid:
            credentials.refresh(GoogleRequest())
        return {
            "service_account_email": credentials.service_account_email,
            "access_token": credentials.token,
        }

    def _fail(self, filename: str, operation: str, started: float, exc: Exception) -> UpstreamFailure:
        app_logging.log_storage_operation(
            filename, operation, False, (time.perf_counter() - started) * 1000, error=str(exc)
        )
        return UpstreamFailure(f"Storage {operation} failed for {filename!r}")

    def _ok(self, filename: str, operation: str, started: float) -> None:
        app_logging.log_storage_operation(
            filename, operation, True, (time.perf_counter() - started) * 1000
        )

    # ──────────────────────────────────────────────────────────────────────────
    # Signed URLs
    # ──────────────────────────────────────────────────────────────────────────

    def generate_signed_upload_url(
        self,
        filename: str,
        content_type: str,
        expires_in: Optional[int] = None,
    ) -> str:
        """V4 signed URL allowing a single PUT of `filename` with `content_type`."""
        ttl = expires_in or self.settings.signed_url_ttl_seconds
        bucket = self._get_bucket()
        started = time.perf_counter()
        try:
            url = bucket.blob(filename).generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=ttl),
                method="PUT",
                content_type=content_type,
                **self._signing_kwargs(),
            )
        except Exception as exc:
            raise self._fail(filename, "signed_upload_url", started, exc) from exc
        self._ok(filename, "signed_upload_url", started)
        return url

    def generate_signed_download_url(self, filename: str, expires_in: Optional[int] = None) -> str:
        ttl = expires_in or self.settings.signed_url_ttl_seconds
        bucket = self._get_bucket()
        started = time.perf_counter()
        try:
            url = bucket.blob(filename).generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=ttl),
                method="GET",
                **self._signing_kwargs(),
            )
        except Exception as exc:
            raise self._fail(filename, "signed_download_url", started, exc) from exc
        self._ok(filename, "signed_download_url", started)
        return url

    def get_public_url(self, filename: str) -> str:
        """Public URL; only resolves if the bucket grants public read."""
        return f"{PUBLIC_URL_BASE}/{self.bucket_name}/{filename}"

    # ──────────────────────────────────────────────────────────────────────────
    # Objects
    # ──────────────────────────────────────────────────────────────────────────

    def list_files(self, prefix: str = "") -> list[StoredFile]:
        bucket = self._get_bucket()
        started = time.perf_counter()
        try:
            blobs = list(bucket.list_blobs(prefix=prefix or None))
        except Exception as exc:
            raise self._fail(prefix or "*", "list", started, exc) from exc

        files = [
            StoredFile(
                name=blob.name,
                size=int(blob.size or 0),
                updated=_iso(blob.updated),
            )
            for blob in blobs
        ]
        self._ok(prefix or "*", "list", started)
        logger.info(f"Listed {len(files)} files (prefix={prefix!r})")
        return files

    def file_exists(self, filename: str) -> bool:
        """False on any lookup error."""
        started = time.perf_counter()
        try:
            exists = self._get_bucket().blob(filename).exists()
        except Exception as exc:
            self._fail(filename, "exists", started, exc)
            return False
        self._ok(filename, "exists", started)
        return bool(exists)

    def upload_file(self, filename: str, data: bytes, content_type: str) -> None:
        bucket = self._get_bucket()
        started = time.perf_counter()
        try:
            blob = bucket.blob(filename)
            blob.cache_control = f"public, max-age={self.settings.cdn_cache_max_age}"
            blob.upload_from_string(data, content_type=content_type)
        except Exception as exc:
            raise self._fail(filename, "upload", started, exc) from exc
        self._ok(filename, "upload", started)

    def delete_file(self, filename: str) -> None:
        bucket = self._get_bucket()
        started = time.perf_counter()
        try:
            bucket.blob(filename).delete()
        except Exception as exc:
            raise self._fail(filename, "delete", started, exc) from exc
        self._ok(filename, "delete", started)


def _iso(value: Optional[datetime]) -> str:
    if value is None:
        value = datetime.now(timezone.utc)
    return value.isoformat()
