"""
agency_api/core/rate_limiter.py — Request admission
Two layers:
  - slowapi limiter for the public read endpoints (RATE_LIMITS table)
  - AdmissionGate, a per-identity fixed-window counter guarding writes

The gate is a fixed window, not a sliding one: a client can land up to
2 * max_requests - 1 requests around a window boundary. That burst is
accepted behaviour for a contact form.
"""
from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address

from agency_api.config import Settings, get_settings
from agency_api.core import logging as app_logging
from agency_api.core.errors import RateLimitedError

# Single shared limiter instance — imported by main.py and routers
limiter = Limiter(key_func=get_remote_address)

# ── Rate limits per read endpoint category ────────────────────────────────────
RATE_LIMITS = {
    # Portfolio gallery browsing: generous, the frontend pages through it
    "portfolio": "120/minute",
    # Admin listing pages
    "admin": "60/minute",
    # Health check / ping
    "health": "30/minute",
}


# ──────────────────────────────────────────────────────────────────────────────
# Fixed-window admission gate
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class ClientWindowState:
    count: int
    window_reset_at: int  # epoch ms


@dataclass(frozen=True)
class AdmissionDecision:
    admitted: bool
    retry_after_seconds: Optional[int] = None


def now_ms() -> int:
    return int(time.time() * 1000)


class AdmissionGate:
    """
    Per-identity fixed-window counter.

    One lock covers the whole read-modify-write of an identity's window, so
    two concurrent requests can never both take the last free slot. The map
    is bounded: expired windows are swept first, then the least recently
    seen identity is evicted.
    """

    def __init__(
        self,
        window_ms: int = 15 * 60 * 1000,
        max_requests: int = 5,
        max_identities: int = 10_000,
    ) -> None:
        if window_ms <= 0 or max_requests <= 0 or max_identities <= 0:
            raise ValueError("window_ms, max_requests and max_identities must be > 0")
        self.window_ms = window_ms
        self.max_requests = max_requests
        self.max_identities = max_identities
        self._windows: OrderedDict[str, ClientWindowState] = OrderedDict()
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AdmissionGate":
        s = settings or get_settings()
        return cls(
            window_ms=s.rate_limit_window_ms,
            max_requests=s.rate_limit_max_requests,
            max_identities=s.rate_limit_max_identities,
        )

    def __len__(self) -> int:
        return len(self._windows)

    def state_for(self, identity: str) -> Optional[ClientWindowState]:
        with self._lock:
            state = self._windows.get(identity)
            if state is None:
                return None
            return ClientWindowState(state.count, state.window_reset_at)

    def admit(self, identity: str, now: Optional[int] = None) -> AdmissionDecision:
        """Decide whether `identity` may proceed at time `now` (epoch ms)."""
        if now is None:
            now = now_ms()

        with self._lock:
            state = self._windows.get(identity)

            if state is None:
                self._make_room(now)
                self._windows[identity] = ClientWindowState(1, now + self.window_ms)
                return AdmissionDecision(admitted=True)

            self._windows.move_to_end(identity)

            if now > state.window_reset_at:
                state.count = 1
                state.window_reset_at = now + self.window_ms
                return AdmissionDecision(admitted=True)

            if state.count >= self.max_requests:
                retry_after = math.ceil((state.window_reset_at - now) / 1000)
                return AdmissionDecision(admitted=False, retry_after_seconds=retry_after)

            state.count += 1
            return AdmissionDecision(admitted=True)

    def sweep(self, now: Optional[int] = None) -> int:
        """Drop every identity whose window has expired. Returns how many were removed."""
        if now is None:
            now = now_ms()
        with self._lock:
            return self._sweep_locked(now)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    # Caller holds self._lock
    def _sweep_locked(self, now: int) -> int:
        expired = [k for k, v in self._windows.items() if now > v.window_reset_at]
        for k in expired:
            del self._windows[k]
        return len(expired)

    # Caller holds self._lock
    def _make_room(self, now: int) -> None:
        if len(self._windows) < self.max_identities:
            return
        swept = self._sweep_locked(now)
        if swept:
            logger.debug(f"Admission gate swept {swept} expired windows.")
        while len(self._windows) >= self.max_identities:
            evicted, _ = self._windows.popitem(last=False)
            logger.debug(f"Admission gate full; evicted least recently seen identity {evicted}.")


# ──────────────────────────────────────────────────────────────────────────────
# FastAPI glue
# ──────────────────────────────────────────────────────────────────────────────

def get_client_ip(request: Request) -> str:
    """Client identity for admission. X-Forwarded-For only when configured to trust it."""
    if get_settings().trust_proxy_headers:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # Take the first IP in the chain
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def enforce_admission(request: Request) -> str:
    """
    Dependency for write endpoints. Raises RateLimitedError on rejection,
    returns the client identity on admission.
    """
    gate: AdmissionGate = request.app.state.admission_gate
    identity = get_client_ip(request)
    decision = gate.admit(identity)
    if not decision.admitted:
        retry_after = decision.retry_after_seconds or 0
        app_logging.log_admission_rejected(identity, retry_after, request.url.path)
        raise RateLimitedError(identity, retry_after)
    return identity
