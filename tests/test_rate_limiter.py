"""
tests/test_rate_limiter.py - Fixed-window limiter and its HTTP integration
"""
from __future__ import annotations

from fastapi.testclient import TestClient

from app.core.rate_limiter import (
    FixedWindowRateLimiter,
    InMemoryRateWindowStore,
    RatePolicy,
    contact_policy,
)
from app.main import create_app
from tests.conftest import FakeClock, make_settings

POLICY = RatePolicy(name="test", window_ms=60_000, max_requests=3)


def test_allows_up_to_max_then_denies(clock):
    limiter = FixedWindowRateLimiter(clock=clock)
    decisions = [limiter.check("1.2.3.4", POLICY) for _ in range(4)]
    assert [d.allowed for d in decisions] == [True, True, True, False]
    assert [d.remaining for d in decisions[:3]] == [2, 1, 0]


def test_retry_after_is_time_left_in_window(clock):
    limiter = FixedWindowRateLimiter(clock=clock)
    for _ in range(3):
        limiter.check("1.2.3.4", POLICY)
    clock.advance(20_000)
    denied = limiter.check("1.2.3.4", POLICY)
    assert not denied.allowed
    assert denied.retry_after_ms == 40_000
    assert denied.retry_after_ms <= POLICY.window_ms


def test_window_resets_after_duration(clock):
    limiter = FixedWindowRateLimiter(clock=clock)
    for _ in range(4):
        limiter.check("1.2.3.4", POLICY)
    clock.advance(POLICY.window_ms)
    assert limiter.check("1.2.3.4", POLICY).allowed


def test_clients_and_policies_are_independent(clock):
    limiter = FixedWindowRateLimiter(clock=clock)
    other = RatePolicy(name="other", window_ms=60_000, max_requests=1)
    for _ in range(3):
        limiter.check("1.2.3.4", POLICY)
    assert not limiter.check("1.2.3.4", POLICY).allowed
    assert limiter.check("5.6.7.8", POLICY).allowed
    assert limiter.check("1.2.3.4", other).allowed


def test_boundary_burst_is_permitted(clock):
    """Fixed windows allow max_requests at the end of one window and again at the start of the next."""
    limiter = FixedWindowRateLimiter(clock=clock)
    for _ in range(3):
        assert limiter.check("1.2.3.4", POLICY).allowed
    clock.advance(POLICY.window_ms)
    for _ in range(3):
        assert limiter.check("1.2.3.4", POLICY).allowed


def test_store_is_injectable_and_holds_one_window_per_key(clock):
    store = InMemoryRateWindowStore()
    limiter = FixedWindowRateLimiter(store=store, clock=clock)
    limiter.check("a", POLICY)
    limiter.check("a", POLICY)
    limiter.check("b", POLICY)
    assert len(store) == 2
    assert store.get(("test", "a")).count == 2
    limiter.reset()
    assert len(store) == 0


def test_policy_from_limit_string():
    policy = RatePolicy.from_string("contact", "5/15 minutes")
    assert policy.max_requests == 5
    assert policy.window_ms == 15 * 60 * 1000
    assert contact_policy() == policy


# ──────────────────────────────────────────────────────────────────────────────
# HTTP integration
# ──────────────────────────────────────────────────────────────────────────────

def _limited_client(clock: FakeClock, fake_storage, **overrides) -> TestClient:
    settings = make_settings(rate_limit_max_requests=2, rate_limit_window_ms=60_000, **overrides)
    app = create_app(settings=settings, storage=fake_storage, clock=clock)
    return TestClient(app)


def test_general_limit_returns_429_with_retry_hint(clock, fake_storage):
    client = _limited_client(clock, fake_storage)
    assert client.get("/api/portfolio").status_code == 200
    assert client.get("/api/portfolio/skills").status_code == 200

    response = client.get("/api/portfolio")
    assert response.status_code == 429
    body = response.json()
    assert body["retryAfter"] <= 60
    assert "timestamp" in body
    assert response.headers["Retry-After"] == str(body["retryAfter"])

    clock.advance(60_000)
    assert client.get("/api/portfolio").status_code == 200


def test_allowed_responses_carry_ratelimit_headers(clock, fake_storage):
    client = _limited_client(clock, fake_storage)
    response = client.get("/api/portfolio")
    assert response.headers["RateLimit-Limit"] == "2"
    assert response.headers["RateLimit-Remaining"] == "1"


def test_health_endpoints_are_exempt(clock, fake_storage):
    client = _limited_client(clock, fake_storage)
    for _ in range(5):
        assert client.get("/health").status_code == 200
        assert client.get("/health/liveness").status_code == 200
    assert client.get("/api/portfolio").status_code == 200


def test_contact_limit_applies_outside_test_mode(clock, fake_storage, valid_contact):
    settings = make_settings(environment="development", rate_limit_max_requests=100)
    client = TestClient(create_app(settings=settings, storage=fake_storage, clock=clock))

    statuses = [client.post("/api/contact", json=valid_contact).status_code for _ in range(6)]
    assert statuses == [200] * 5 + [429]

    denied = client.post("/api/contact", json=valid_contact)
    assert denied.json()["error"] == "Too many contact form submissions, please try again later."

    clock.advance(15 * 60 * 1000)
    assert client.post("/api/contact", json=valid_contact).status_code == 200


def test_contact_limit_bypassed_in_test_mode(client, valid_contact):
    statuses = [client.post("/api/contact", json=valid_contact).status_code for _ in range(8)]
    assert all(s == 200 for s in statuses)
