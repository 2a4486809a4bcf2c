"""
middleware/rate_limit.py
------------------------
In-process fixed-window rate limiting per client IP.

Buckets:
  api       every /api request except health probes
  login     tenant and super-admin login; only failed attempts count
  register  company sign-up and joining a company

Counters live in the worker's memory, so with several workers each one
enforces the limit on its own. The limiter is stored on app.state so
tests can swap it.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bizdesk.core.config import settings
from bizdesk.core.exceptions import TooManyRequests
from bizdesk.core.logging import get_logger
from bizdesk.dependencies import client_ip

logger = get_logger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests. Please try again later."

# Past this many tracked keys, lapsed windows are dropped on the next new key.
MAX_TRACKED_WINDOWS = 10_000

EXEMPT_PATHS = frozenset({"/api/health", "/api/wake", "/api/ping"})
LOGIN_PATHS = frozenset({"/api/auth/login", "/api/superadmin/login"})
REGISTER_PATHS = frozenset({"/api/auth/register", "/api/company/register"})


@dataclass(frozen=True)
class Bucket:
    name: str
    limit: int
    window_seconds: int
    failures_only: bool = False


class FixedWindowRateLimiter:
    """Counts hits per (bucket, key) inside windows that start at the first hit."""

    def __init__(
        self,
        buckets: Dict[str, Bucket],
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
        max_windows: int = MAX_TRACKED_WINDOWS,
    ) -> None:
        self.buckets = buckets
        self.enabled = enabled
        self._clock = clock
        self._windows: Dict[Tuple[str, str], List[float]] = {}
        self._prune_at = max_windows
        self._max_windows = max_windows

    @classmethod
    def from_settings(cls) -> "FixedWindowRateLimiter":
        return cls(
            {
                "api": Bucket("api", settings.API_RATE_LIMIT, settings.API_RATE_WINDOW_SECONDS),
                "login": Bucket(
                    "login",
                    settings.LOGIN_RATE_LIMIT,
                    settings.LOGIN_RATE_WINDOW_SECONDS,
                    failures_only=True,
                ),
                "register": Bucket(
                    "register", settings.REGISTER_RATE_LIMIT, settings.REGISTER_RATE_WINDOW_SECONDS
                ),
            },
            enabled=settings.RATE_LIMIT_ENABLED,
        )

    def _window(self, bucket: Bucket, key: str) -> List[float]:
        """[window_start, hits]; a lapsed window is replaced by a fresh one."""
        now = self._clock()
        window = self._windows.get((bucket.name, key))
        if window is None or now - window[0] >= bucket.window_seconds:
            window = [now, 0]
            self._windows[(bucket.name, key)] = window
            if len(self._windows) > self._prune_at:
                self.prune(now)
        return window

    def prune(self, now: Optional[float] = None) -> int:
        """Drop lapsed windows and return how many were removed."""
        now = self._clock() if now is None else now
        lapsed = [
            key
            for key, (started, _) in self._windows.items()
            if key[0] in self.buckets and now - started >= self.buckets[key[0]].window_seconds
        ]
        for key in lapsed:
            del self._windows[key]
        # Next scan once the map has doubled.
        self._prune_at = max(self._max_windows, 2 * len(self._windows))
        if lapsed:
            logger.debug("Pruned rate limit windows", removed=len(lapsed), tracked=len(self._windows))
        return len(lapsed)

    def retry_after(self, bucket: Bucket, key: str) -> int:
        """Seconds until the key may try again, 0 when it is under the limit."""
        window = self._window(bucket, key)
        if window[1] < bucket.limit:
            return 0
        return max(1, int(bucket.window_seconds - (self._clock() - window[0])))

    def hit(self, bucket: Bucket, key: str) -> None:
        self._window(bucket, key)[1] += 1

    def reset(self) -> None:
        self._windows.clear()
        self._prune_at = self._max_windows


def buckets_for(path: str, method: str) -> List[str]:
    if not path.startswith("/api") or path in EXEMPT_PATHS or method == "OPTIONS":
        return []
    names = ["api"]
    if method == "POST" and path in LOGIN_PATHS:
        names.append("login")
    elif method == "POST" and path in REGISTER_PATHS:
        names.append("register")
    return names


class RateLimitMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        limiter: Optional[FixedWindowRateLimiter] = getattr(request.app.state, "limiter", None)
        names = buckets_for(request.url.path, request.method)
        if limiter is None or not limiter.enabled or not names:
            return await call_next(request)

        ip = client_ip(request)
        buckets = [limiter.buckets[name] for name in names if name in limiter.buckets]
        for bucket in buckets:
            wait = limiter.retry_after(bucket, ip)
            if wait:
                logger.warning("Rate limit exceeded", bucket=bucket.name, ip=ip, path=request.url.path)
                error = TooManyRequests(RATE_LIMITED_MESSAGE)
                return JSONResponse(
                    status_code=error.status_code,
                    content=error.to_dict(),
                    headers={"Retry-After": str(wait)},
                )

        for bucket in buckets:
            if not bucket.failures_only:
                limiter.hit(bucket, ip)
        response = await call_next(request)
        if response.status_code >= 400:
            for bucket in buckets:
                if bucket.failures_only:
                    limiter.hit(bucket, ip)
        return response
