"""
Memory Locks API — Rate Limiting
=================================

What:  Per-caller fixed-window rate limiter, applied globally by
       RateLimitMiddleware and per route through the `rate_limit()` dependency.
How:   One counter per (policy, caller) pair with a window reset time.
Who:   Every request except health checks and the API docs.

Algorithm: Fixed Window Counter
    1. First hit for a key → count = 1, reset_at = now + window
    2. Later hits before reset_at → count += 1
    3. A hit at or after reset_at starts a new window
    4. count > max_requests → rejected with 429 and Retry-After

    Expired windows are swept every RATE_LIMIT_SWEEP_INTERVAL seconds,
    checked on each hit, so the table only holds active callers.

Callers:
    Worker-to-worker calls are keyed by a hash of their Worker-API-Key, so
    every instance of a worker shares one budget. Everything else is keyed
    by client IP (CF-Connecting-IP, then X-Forwarded-For, then the socket).

Policies (window, max):
    read          60s, 120   GET/HEAD, applied by the middleware
    api           60s,  60   all other methods, applied by the middleware
    media_upload  60s,  10   POST /media-objects
    batch         60s,   5   bulk lock creation and batch reorder

Limits:
    The table lives in process memory. With several uvicorn workers each
    worker enforces its own budget.
"""

import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse

from memorylocks.config import settings
from memorylocks.exceptions import RateLimitExceededError
from memorylocks.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

API_KEY_HEADER = "Worker-API-Key"


@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    window_seconds: int
    max_requests: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0

    def headers(self) -> Dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.retry_after)
        return headers


POLICIES: Dict[str, RateLimitPolicy] = {
    "read": RateLimitPolicy("read", settings.rate_limit_window, settings.rate_limit_read_requests),
    "api": RateLimitPolicy("api", settings.rate_limit_window, settings.rate_limit_requests),
    "media_upload": RateLimitPolicy(
        "media_upload", settings.rate_limit_window, settings.rate_limit_upload_requests
    ),
    "batch": RateLimitPolicy("batch", settings.rate_limit_window, settings.rate_limit_batch_requests),
}


class FixedWindowRateLimiter:
    """
    Thread-safe fixed-window counter table.

    `clock` is injectable so tests can step across window boundaries
    without sleeping.
    """

    def __init__(
        self,
        sweep_interval: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._windows: Dict[str, Tuple[int, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_interval = sweep_interval or settings.rate_limit_sweep_interval
        self._last_sweep = clock()

    def hit(self, key: str, policy: RateLimitPolicy) -> RateLimitDecision:
        now = self._clock()
        bucket = f"{policy.name}:{key}"
        with self._lock:
            if now - self._last_sweep >= self._sweep_interval:
                self._sweep_locked(now)

            count, reset_at = self._windows.get(bucket, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + policy.window_seconds
            count += 1
            self._windows[bucket] = (count, reset_at)

        if count > policy.max_requests:
            return RateLimitDecision(
                allowed=False,
                limit=policy.max_requests,
                remaining=0,
                reset_at=reset_at,
                retry_after=max(1, int(reset_at - now + 0.999)),
            )
        return RateLimitDecision(
            allowed=True,
            limit=policy.max_requests,
            remaining=policy.max_requests - count,
            reset_at=reset_at,
        )

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, (_, reset_at) in self._windows.items() if reset_at <= now]
        for k in expired:
            del self._windows[k]
        self._last_sweep = now
        if expired:
            logger.debug("Swept %d expired rate-limit windows", len(expired))
        return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()
            self._last_sweep = self._clock()

    def __len__(self) -> int:
        return len(self._windows)


rate_limiter = FixedWindowRateLimiter()


def client_ip(request: Request) -> str:
    cf_ip = request.headers.get("CF-Connecting-IP")
    if cf_ip:
        return cf_ip.strip()
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def caller_key(request: Request) -> str:
    api_key = request.headers.get(API_KEY_HEADER)
    if api_key:
        return "apikey:" + hashlib.sha256(api_key.encode()).hexdigest()[:16]
    return "ip:" + client_ip(request)


def rate_limit(policy_name: str):
    """
    Route dependency enforcing a named policy on top of the global one.

    Usage:
        @router.post("/create/{total_locks}", dependencies=[Depends(rate_limit("batch"))])
    """
    policy = POLICIES[policy_name]

    async def dependency(request: Request, response: Response) -> None:
        decision = rate_limiter.hit(caller_key(request), policy)
        if not decision.allowed:
            logger.warning(
                "Rate limit '%s' exceeded for %s", policy.name, caller_key(request)
            )
            raise RateLimitExceededError(
                retry_after=decision.retry_after, headers=decision.headers()
            )
        response.headers.update(decision.headers())

    return dependency


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies the `read` policy to GET/HEAD and the `api` policy to every
    other method. Route-level policies set their own X-RateLimit-* headers,
    which take precedence over the global ones.
    """

    EXCLUDED_PATHS = {"/", "/health", "/public/health", "/docs", "/openapi.json", "/redoc"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        policy = POLICIES["read"] if request.method in ("GET", "HEAD") else POLICIES["api"]
        key = caller_key(request)
        decision = rate_limiter.hit(key, policy)

        if not decision.allowed:
            logger.warning(
                "Rate limit '%s' exceeded for %s (%d/%ds)",
                policy.name, key, policy.max_requests, policy.window_seconds,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "Success": False,
                    "Message": "Rate limit exceeded. Please try again later.",
                    "Code": RateLimitExceededError.code,
                    "RequestId": request_id_var.get(""),
                },
                headers=decision.headers(),
            )

        response = await call_next(request)
        for name, value in decision.headers().items():
            if name not in response.headers:
                response.headers[name] = value
        return response
