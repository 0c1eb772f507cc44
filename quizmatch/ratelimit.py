"""
Request rate limiting for the public storefront endpoints.

``InMemoryRateLimiter`` is a fixed-window counter held in process memory.
It is lost on restart and is not shared between server instances; put a
shared implementation of ``RateLimiter`` in front of multi-instance
deployments.
"""
from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from fastapi import Request

from .config import DEFAULT_RATE_LIMIT_CONFIG, RateLimitConfig

_CLEANUP_INTERVAL = 300.0

_IP_HEADERS = (
    "cf-connecting-ip",
    "x-real-ip",
    "x-forwarded-for",
    "x-client-ip",
)


class RateLimiter(Protocol):
    def allow(self, key: str) -> bool:
        ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    def __init__(
        self,
        max_requests: int = DEFAULT_RATE_LIMIT_CONFIG.max_requests,
        window_seconds: float = DEFAULT_RATE_LIMIT_CONFIG.window_seconds,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    @classmethod
    def from_config(cls, config: RateLimitConfig = DEFAULT_RATE_LIMIT_CONFIG) -> "InMemoryRateLimiter":
        return cls(max_requests=config.max_requests, window_seconds=config.window_seconds)

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < _CLEANUP_INTERVAL:
            return
        self._last_cleanup = now
        for key in [k for k, w in self._windows.items() if now > w.reset_at]:
            del self._windows[key]

    def allow(self, key: str) -> bool:
        now = self._clock()
        with self._lock:
            self._cleanup(now)
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self.window_seconds)
                return True
            if window.count >= self.max_requests:
                return False
            window.count += 1
            return True

    def remaining(self, key: str) -> int:
        with self._lock:
            window = self._windows.get(key)
            if window is None or self._clock() > window.reset_at:
                return self.max_requests
            return max(0, self.max_requests - window.count)

    def retry_after(self, key: str) -> int:
        """Whole seconds until *key*'s window resets (0 if it already has)."""
        with self._lock:
            window = self._windows.get(key)
            if window is None:
                return 0
            return max(0, int(window.reset_at - self._clock() + 0.999))

    def headers(self, key: str) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.max_requests),
            "X-RateLimit-Remaining": str(self.remaining(key)),
        }


def get_client_ip(request: Request) -> str:
    for header in _IP_HEADERS:
        value = request.headers.get(header)
        if value:
            ip = value.split(",")[0].strip()
            if ip:
                return ip
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def submission_key(quiz_id: str, client_ip: str) -> str:
    return f"submit:{quiz_id}:{client_ip}"
