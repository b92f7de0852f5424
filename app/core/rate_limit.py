"""
Fixed-window rate limiting per client IP.

Counters live in a process-wide RateLimitStore. The default store is in-memory
and therefore per process; multi-process deployments that need a global limit
install a shared store once at startup via install_rate_limit_store().
"""

import logging
import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from fastapi import Request, Response

from app.core.config import settings
from app.core.errors import ApiError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of one hit against a window."""

    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


class RateLimitStore(Protocol):
    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult: ...

    def reset(self) -> None: ...


class InMemoryRateLimitStore:
    """Fixed-window counters keyed by limiter name and client IP."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (window_start, count)
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str, limit: int, window_seconds: int) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            start, count = self._windows.get(key, (now, 0))
            if now - start >= window_seconds:
                start, count = now, 0
            count += 1
            self._windows[key] = (start, count)
            self._prune(now, window_seconds)
        reset_seconds = max(0, math.ceil(start + window_seconds - now))
        return RateLimitResult(
            allowed=count <= limit,
            limit=limit,
            remaining=max(0, limit - count),
            reset_seconds=reset_seconds,
        )

    def _prune(self, now: float, window_seconds: int) -> None:
        # Caller holds the lock. Only prune when the table grows large.
        if len(self._windows) < 10_000:
            return
        expired = [k for k, (s, _) in self._windows.items() if now - s >= window_seconds]
        for k in expired:
            del self._windows[k]

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()


_store: RateLimitStore | None = None
_store_lock = threading.Lock()


def get_rate_limit_store() -> RateLimitStore:
    """Return the process-wide store, creating the in-memory default on first use."""
    global _store
    with _store_lock:
        if _store is None:
            _store = InMemoryRateLimitStore()
        return _store


def install_rate_limit_store(store: RateLimitStore) -> None:
    """Install a shared store. Allowed once, before any limiter has been hit."""
    global _store
    with _store_lock:
        if _store is not None:
            raise RuntimeError("Rate limit store is already initialized")
        _store = store


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimiter:
    """
    Enforces `limit` requests per `window_seconds` per client IP.

    Used as a route dependency, or from middleware through hit() and apply_headers().
    Sets RateLimit-* headers on allowed responses; raises a 429 ApiError otherwise.
    """

    def __init__(
        self,
        name: str,
        limit: int,
        window_seconds: int,
        message: str,
        skip_in_test: bool = False,
    ) -> None:
        self.name = name
        self.limit = limit
        self.window_seconds = window_seconds
        self.message = message
        self.skip_in_test = skip_in_test

    def hit(self, request: Request) -> RateLimitResult | None:
        """Count one request; None when the limiter is skipped. Raises a 429 ApiError over the limit."""
        if self.skip_in_test and settings.is_test:
            return None
        ip = client_ip(request)
        result = get_rate_limit_store().hit(f"{self.name}:{ip}", self.limit, self.window_seconds)
        if not result.allowed:
            logger.warning(
                "Rate limit exceeded",
                extra={"limiter": self.name, "client_ip": ip, "path": request.url.path},
            )
            raise ApiError.rate_limited(self.message, result.reset_seconds)
        return result

    @staticmethod
    def apply_headers(response: Response, result: RateLimitResult) -> None:
        response.headers["RateLimit-Limit"] = str(result.limit)
        response.headers["RateLimit-Remaining"] = str(result.remaining)
        response.headers["RateLimit-Reset"] = str(result.reset_seconds)

    async def __call__(self, request: Request, response: Response) -> None:
        result = self.hit(request)
        if result is not None:
            self.apply_headers(response, result)


_WINDOW_MINUTES = max(1, settings.RATE_LIMIT_WINDOW_SECONDS // 60)

api_rate_limiter = RateLimiter(
    "api",
    settings.API_RATE_LIMIT,
    settings.RATE_LIMIT_WINDOW_SECONDS,
    f"Too many requests from this IP, please try again after {_WINDOW_MINUTES} minutes",
)

forgot_password_rate_limiter = RateLimiter(
    "forgot-password",
    settings.FORGOT_PASSWORD_RATE_LIMIT,
    settings.RATE_LIMIT_WINDOW_SECONDS,
    f"Too many password reset requests from this IP, please try again after {_WINDOW_MINUTES} minutes",
    skip_in_test=True,
)

reset_password_rate_limiter = RateLimiter(
    "reset-password",
    settings.RESET_PASSWORD_RATE_LIMIT,
    settings.RATE_LIMIT_WINDOW_SECONDS,
    "Too many password reset attempts, please try again later",
)
