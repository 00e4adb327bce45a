"""
tests/test_middleware.py - Security headers, CORS, body ceiling, 404s, logging
"""
from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.core.logging import request_log_level
from app.core.middleware import CONTENT_SECURITY_POLICY
from app.main import create_app
from tests.conftest import make_settings


def test_security_headers_on_every_response(client):
    for path in ("/", "/api/portfolio", "/health/liveness", "/does-not-exist"):
        headers = client.get(path).headers
        assert headers["content-security-policy"] == CONTENT_SECURITY_POLICY
        assert "max-age=31536000" in headers["strict-transport-security"]
        assert headers["x-frame-options"] == "DENY"
        assert headers["x-content-type-options"] == "nosniff"


def test_csp_denies_framing_and_objects():
    assert "frame-src 'none'" in CONTENT_SECURITY_POLICY
    assert "object-src 'none'" in CONTENT_SECURITY_POLICY
    assert CONTENT_SECURITY_POLICY.startswith("default-src 'self'")


def test_unmatched_route_is_404_with_method_and_path(client):
    response = client.get("/non-existent-route")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Not Found"
    assert body["message"] == "Cannot GET /non-existent-route"
    assert "timestamp" in body

    response = client.post("/api/nothing-here")
    assert response.json()["message"] == "Cannot POST /api/nothing-here"


def test_oversized_body_rejected_before_handler(fake_storage, clock):
    app = create_app(settings=make_settings(max_body_bytes=100), storage=fake_storage, clock=clock)
    client = TestClient(app)
    with patch.object(app.state.contact, "process_submission") as process:
        response = client.post("/api/contact", content=b"x" * 500, headers={"content-type": "application/json"})
    assert response.status_code == 413
    assert response.json()["error"] == "Payload Too Large"
    process.assert_not_called()


def test_cors_allows_configured_origin(fake_storage, clock):
    settings = make_settings(allowed_origins="https://johndoe.dev, https://www.johndoe.dev")
    client = TestClient(create_app(settings=settings, storage=fake_storage, clock=clock))

    response = client.get("/api/portfolio", headers={"Origin": "https://www.johndoe.dev"})
    assert response.headers["access-control-allow-origin"] == "https://www.johndoe.dev"

    response = client.get("/api/portfolio", headers={"Origin": "https://evil.example"})
    assert "access-control-allow-origin" not in response.headers


def test_cors_preflight(client):
    response = client.options(
        "/api/contact",
        headers={"Origin": "https://anywhere.dev", "Access-Control-Request-Method": "POST"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-max-age"] == "86400"


@pytest.mark.parametrize("status_code,level", [
    (200, "INFO"),
    (302, "INFO"),
    (400, "WARNING"),
    (429, "WARNING"),
    (500, "ERROR"),
    (503, "ERROR"),
])
def test_request_log_level(status_code, level):
    assert request_log_level(status_code) == level


def test_health_liveness_not_request_logged(client):
    with patch("app.core.middleware.app_logging.log_request") as log_request:
        client.get("/health/liveness")
        client.get("/health")
        log_request.assert_not_called()
        client.get("/api/portfolio")
        log_request.assert_called_once()
    assert log_request.call_args.kwargs["path"] == "/api/portfolio"
    assert log_request.call_args.kwargs["status_code"] == 200


@pytest.mark.parametrize("method,path", [
    ("GET", "/api/contact"),
    ("DELETE", "/health"),
    ("PUT", "/api/portfolio"),
])
def test_unsupported_method_on_known_path_is_404(client, method, path):
    response = client.request(method, path)
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "Not Found"
    assert body["message"] == f"Cannot {method} {path}"


def test_streamed_body_over_limit_rejected(fake_storage, clock):
    app = create_app(settings=make_settings(max_body_bytes=100), storage=fake_storage, clock=clock)
    client = TestClient(app)

    def chunks():
        for _ in range(8):
            yield b"x" * 256

    with patch.object(app.state.contact, "process_submission") as process:
        response = client.post(
            "/api/contact", content=chunks(), headers={"content-type": "application/json"}
        )
    assert response.status_code == 413
    body = response.json()
    assert body["error"] == "Payload Too Large"
    assert "100 bytes" in body["message"]
    process.assert_not_called()


def test_streamed_body_under_limit_accepted(client, valid_contact):
    payload = json.dumps(valid_contact).encode()

    def chunks():
        yield payload[:20]
        yield payload[20:]

    response = client.post("/api/contact", content=chunks(), headers={"content-type": "application/json"})
    assert response.status_code == 200


def test_unexpected_error_passes_through_header_and_logging_stages(client, fake_storage):
    fake_storage.fail_with = RuntimeError("boom")
    with patch("app.core.middleware.app_logging.log_request") as log_request:
        response = client.get("/api/assets", headers={"Origin": "https://anywhere.dev"})
    assert response.status_code == 500
    assert response.json()["message"] == "An unexpected error occurred."
    assert response.headers["content-security-policy"] == CONTENT_SECURITY_POLICY
    assert response.headers["access-control-allow-origin"] == "*"
    assert log_request.call_args.kwargs["status_code"] == 500


@pytest.mark.parametrize("path", ["/api/portfolio/", "/api/portfolio/skills/", "/health/"])
def test_trailing_slash_served_directly(client, path):
    response = client.get(path, follow_redirects=False)
    assert response.status_code == 200
    assert "location" not in response.headers
