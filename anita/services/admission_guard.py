"""
Per-client, per-route request admission (fixed windows, in memory).

One window per ``route:client:window_ms`` key. A missing or expired window is
replaced by a fresh one; a full window rejects with the seconds left until it
resets. State lives on the guard instance (stored on ``app.state``), never in a
module global, so tests get isolated guards with their own clock.
"""

from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import HTTPException, Request

from anita.metrics import ADMISSION_DECISIONS
from anita.utils.request_ctx import get_request_id

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimit:
    max_requests: int
    window_seconds: float

    @property
    def window_ms(self) -> int:
        return int(self.window_seconds * 1000)


RATE_LIMITS: Dict[str, RateLimit] = {
    "chat-completion": RateLimit(20, 60),
    "save-transaction": RateLimit(15, 60),
    "file-analysis": RateLimit(10, 60),
    "checkout": RateLimit(10, 60),
    "transcription": RateLimit(5, 60),
}


@dataclass
class RateWindow:
    count: int
    reset_at: float


@dataclass(frozen=True)
class Admission:
    allowed: bool
    retry_after_seconds: Optional[int] = None
    remaining: int = 0
    reset_at: float = 0.0


class AdmissionGuard:
    def __init__(
        self,
        limits: Optional[Dict[str, RateLimit]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limits = dict(RATE_LIMITS if limits is None else limits)
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def limit_for(self, route_key: str) -> RateLimit:
        try:
            return self.limits[route_key]
        except KeyError:
            raise KeyError(f"no rate limit configured for route {route_key!r}") from None

    def admit(self, client_key: str, route_key: str) -> Admission:
        limit = self.limit_for(route_key)
        key = f"{route_key}:{client_key}:{limit.window_ms}"
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or now >= window.reset_at:
                window = RateWindow(count=0, reset_at=now + limit.window_seconds)
                self._windows[key] = window
            if window.count >= limit.max_requests:
                retry_after = max(1, math.ceil(window.reset_at - now))
                return Admission(
                    allowed=False,
                    retry_after_seconds=retry_after,
                    remaining=0,
                    reset_at=window.reset_at,
                )
            window.count += 1
            return Admission(
                allowed=True,
                remaining=limit.max_requests - window.count,
                reset_at=window.reset_at,
            )

    def sweep(self) -> int:
        """Drop expired windows; returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [k for k, w in self._windows.items() if now >= w.reset_at]
            for k in expired:
                del self._windows[k]
        return len(expired)


async def admission_sweep_loop(guard: AdmissionGuard, interval_seconds: float = 300.0):
    """Periodically purge expired windows; cancelled on shutdown."""
    while True:
        try:
            removed = guard.sweep()
            if removed:
                log.debug("admission sweep removed %d windows", removed)
        except Exception as e:  # keep the loop alive
            log.warning("admission sweep error: %s", e)
        await asyncio.sleep(interval_seconds)


def client_key_for(request: Request, user_id: Optional[str] = None) -> str:
    if user_id:
        return f"user:{user_id}"
    xff = request.headers.get("x-forwarded-for")
    if xff and xff.split(",")[0].strip():
        return f"ip:{xff.split(',')[0].strip()}"
    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return f"ip:{real_ip.strip()}"
    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return "ip:unknown"


def get_admission_guard(request: Request) -> AdmissionGuard:
    guard = getattr(request.app.state, "admission_guard", None)
    if guard is None:
        # App started without lifespan (e.g. mounted elsewhere); attach lazily
        guard = AdmissionGuard()
        request.app.state.admission_guard = guard
    return guard


class RateLimitExceeded(HTTPException):
    """429 whose detail is returned as the top-level JSON body."""

    def __init__(self, retry_after: int):
        super().__init__(
            status_code=429,
            detail={
                "error": "Rate limit exceeded",
                "message": f"Too many requests. Please try again in {retry_after} seconds.",
                "retryAfter": retry_after,
                "requestId": get_request_id(),
            },
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


def enforce_admission(
    request: Request, route_key: str, user_id: Optional[str] = None
) -> Admission:
    """Admit or raise 429 with Retry-After and the JSON error body."""
    guard = get_admission_guard(request)
    client_key = client_key_for(request, user_id)
    decision = guard.admit(client_key, route_key)
    outcome = "admitted" if decision.allowed else "rejected"
    ADMISSION_DECISIONS.labels(route=route_key, outcome=outcome).inc()
    if decision.allowed:
        return decision
    retry_after = decision.retry_after_seconds or 1
    log.warning(
        "admission rejected",
        extra={"route": route_key, "client": client_key, "retry_after": retry_after},
    )
    raise RateLimitExceeded(retry_after)
