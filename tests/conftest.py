"""
tests/conftest.py - Shared pytest fixtures
"""
from __future__ import annotations

import os

# Must be set before app.config is imported anywhere
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("GCS_BUCKET_NAME", "test-bucket")

from typing import Optional

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.core.rate_limiter import InMemoryRateWindowStore
from app.main import create_app
from app.models import StoredFile


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0):
        self.now = start_ms

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeStorage:
    """In-memory stand-in for StorageClient."""

    bucket_name = "test-bucket"

    def __init__(self, files: Optional[list[StoredFile]] = None):
        self.files = files or []
        self.upload_requests: list[tuple[str, str, Optional[int]]] = []
        self.fail_with: Optional[Exception] = None

    def generate_signed_upload_url(self, filename, content_type, expires_in=None):
        if self.fail_with:
            raise self.fail_with
        self.upload_requests.append((filename, content_type, expires_in))
        return f"https://storage.googleapis.com/{self.bucket_name}/{filename}?X-Goog-Signature=abc"

    def get_public_url(self, filename):
        return f"https://storage.googleapis.com/{self.bucket_name}/{filename}"

    def list_files(self, prefix=""):
        if self.fail_with:
            raise self.fail_with
        return [f for f in self.files if f.name.startswith(prefix)]


def make_settings(**overrides) -> Settings:
    values = {"environment": "testing", "gcs_bucket_name": "test-bucket"}
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage(files=[
        StoredFile(name="images/avatar.png", size=2048, updated="2024-01-01T00:00:00+00:00"),
        StoredFile(name="images/banner.jpg", size=4096, updated="2024-01-02T00:00:00+00:00"),
        StoredFile(name="docs/resume.pdf", size=10240, updated="2024-01-03T00:00:00+00:00"),
    ])


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def app(settings, fake_storage, clock):
    return create_app(
        settings=settings,
        storage=fake_storage,
        rate_store=InMemoryRateWindowStore(),
        clock=clock,
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def valid_contact() -> dict:
    return {
        "name": "Jane Smith",
        "email": "jane.smith@portfolio-mail.com",
        "subject": "Project inquiry",
        "message": "I would like to discuss a cloud migration project with you.",
    }
