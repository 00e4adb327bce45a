"""
app/core/rate_limiter.py - Fixed-window rate limiting
Policies use the slowapi/limits "count/period" notation. Window records live in an
injectable store keyed by (policy, client), so the in-memory table can be swapped
for a shared one when running several instances.

Fixed windows let a client burst up to 2 x max_requests across a window boundary.
"""
from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from limits import parse as parse_limit
from slowapi.util import get_remote_address
from starlette.requests import Request

Clock = Callable[[], float]


def _now_ms() -> float:
    return time.time() * 1000


# ── Policy strings ────────────────────────────────────────────────────────────
RATE_LIMITS = {
    # Contact form: fixed, deliberately strict
    "contact": "5/15 minutes",
}

# Paths never counted against the general policy
EXEMPT_PATHS = frozenset({"/health", "/health/liveness", "/health/readiness"})


@dataclass(frozen=True)
class RatePolicy:
    name: str
    window_ms: int
    max_requests: int

    @classmethod
    def from_string(cls, name: str, limit: str) -> "RatePolicy":
        """Build a policy from e.g. "5/15 minutes" or "100/minute"."""
        item = parse_limit(limit)
        return cls(name=name, window_ms=item.get_expiry() * 1000, max_requests=item.amount)


@dataclass
class RateWindow:
    count: int
    window_start_ms: float


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_ms: int = 0


class RateWindowStore(Protocol):
    def get(self, key: tuple[str, str]) -> Optional[RateWindow]: ...

    def set(self, key: tuple[str, str], window: RateWindow) -> None: ...

    def clear(self) -> None: ...


class InMemoryRateWindowStore:
    """Process-local window table. Entries are created lazily and never evicted."""

    def __init__(self) -> None:
        self._windows: dict[tuple[str, str], RateWindow] = {}

    def get(self, key: tuple[str, str]) -> Optional[RateWindow]:
        return self._windows.get(key)

    def set(self, key: tuple[str, str], window: RateWindow) -> None:
        self._windows[key] = window

    def clear(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


class FixedWindowRateLimiter:
    """
    check() looks up (or creates) the caller's window, resets it once
    now - window_start >= window_ms, increments the count and denies when the
    count exceeds the policy maximum.
    """

    def __init__(
        self,
        store: Optional[RateWindowStore] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store: RateWindowStore = store if store is not None else InMemoryRateWindowStore()
        self._clock: Clock = clock or _now_ms
        # Sync route handlers run in a threadpool; keep read-increment-write atomic.
        self._lock = threading.Lock()

    def check(self, client_key: str, policy: RatePolicy) -> RateDecision:
        key = (policy.name, client_key)
        with self._lock:
            now = self._clock()
            window = self.store.get(key)
            if window is None or now - window.window_start_ms >= policy.window_ms:
                window = RateWindow(count=0, window_start_ms=now)

            window.count += 1
            self.store.set(key, window)

            remaining = max(0, policy.max_requests - window.count)
            if window.count > policy.max_requests:
                retry_after_ms = int(policy.window_ms - (now - window.window_start_ms))
                return RateDecision(
                    allowed=False,
                    limit=policy.max_requests,
                    remaining=0,
                    retry_after_ms=max(0, retry_after_ms),
                )
            return RateDecision(allowed=True, limit=policy.max_requests, remaining=remaining)

    def reset(self) -> None:
        with self._lock:
            self.store.clear()


def client_key(request: Request) -> str:
    """Rate-limit key: the caller's remote address."""
    return get_remote_address(request)


def general_policy(window_ms: int, max_requests: int) -> RatePolicy:
    return RatePolicy(name="general", window_ms=window_ms, max_requests=max_requests)


def contact_policy() -> RatePolicy:
    return RatePolicy.from_string("contact", RATE_LIMITS["contact"])
