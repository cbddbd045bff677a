"""
Sloka API — Rate Limiting Middleware
=====================================

What:  Per-address sliding window rate limits.
How:   `SlidingWindowLimiter` keeps a list of request timestamps per client
       address. `RateLimitMiddleware` applies one limiter to the paths its
       matcher accepts. The application installs two of them:

           general   every /api path          100 requests / 15 minutes
           quotes    /api/quote*, /api/quotes  30 requests / 1 minute

When:  Before any route handler; a rejected request never reaches the store.

Algorithm: Sliding Window Log
    1. Drop timestamps older than the window for this address
    2. If the remaining count >= limit, reject with 429
    3. Otherwise record the current timestamp and let the request through

    Every response on a limited path carries RateLimit-Limit,
    RateLimit-Remaining and RateLimit-Reset; a rejection also carries
    Retry-After.

Scope:
    State lives in process memory, so limits are per worker process.
"""

import logging
import math
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from sloka_api.exceptions import RateLimitExceededError
from sloka_api.middleware.client import client_ip

logger = logging.getLogger(__name__)

PathMatcher = Callable[[str], bool]


def is_api_path(path: str) -> bool:
    return path == "/api" or path.startswith("/api/")


def is_quote_path(path: str) -> bool:
    return path.startswith("/api/quote/") or path == "/api/quotes" or path.startswith("/api/quotes/")


@dataclass(frozen=True)
class RateLimitState:
    limit: int
    remaining: int
    reset_after: int  # seconds until the oldest counted request leaves the window


class SlidingWindowLimiter:
    """
    In-memory sliding window log keyed by client address.

    `hit()` either records the request and returns the window state, or
    raises RateLimitExceededError with the number of seconds to wait.
    """

    # Inactive addresses are purged after this many hits
    CLEANUP_EVERY = 1000

    def __init__(self, limit: int, window: int, message: str):
        self.limit = limit
        self.window = window
        self.message = message
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._hits = 0

    def hit(self, key: str, now: Optional[float] = None) -> RateLimitState:
        now = time.time() if now is None else now
        window_start = now - self.window

        timestamps = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = timestamps

        if len(timestamps) >= self.limit:
            retry_after = max(1, math.ceil(timestamps[0] + self.window - now))
            raise RateLimitExceededError(
                message=self.message,
                retry_after=retry_after,
                context={"client_ip": key, "limit": self.limit, "window": self.window},
            )

        timestamps.append(now)

        self._hits += 1
        if self._hits % self.CLEANUP_EVERY == 0:
            self._cleanup_inactive(window_start)

        return RateLimitState(
            limit=self.limit,
            remaining=self.limit - len(timestamps),
            reset_after=max(0, math.ceil(timestamps[0] + self.window - now)),
        )

    def _cleanup_inactive(self, window_start: float) -> None:
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] <= window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Cleaned up %d inactive rate-limit entries", len(inactive))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies one SlidingWindowLimiter to the paths accepted by `matcher`.

    Rejections are answered here with the error envelope because middleware
    runs outside FastAPI's exception handlers.
    """

    def __init__(
        self,
        app: ASGIApp,
        limit: int,
        window: int,
        message: str,
        matcher: PathMatcher = is_api_path,
        trust_proxy: bool = True,
    ):
        super().__init__(app)
        self.limiter = SlidingWindowLimiter(limit=limit, window=window, message=message)
        self.matcher = matcher
        self.trust_proxy = trust_proxy

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS" or not self.matcher(request.url.path):
            return await call_next(request)

        ip = client_ip(request, trust_proxy=self.trust_proxy)

        try:
            state = self.limiter.hit(ip)
        except RateLimitExceededError as exc:
            logger.warning(
                "Rate limit exceeded for %s on %s: %d requests in %ds window",
                ip,
                request.url.path,
                self.limiter.limit,
                self.limiter.window,
            )
            return JSONResponse(
                status_code=exc.status_code,
                content={"success": False, "error": exc.message},
                headers={
                    "Retry-After": str(exc.retry_after),
                    "RateLimit-Limit": str(self.limiter.limit),
                    "RateLimit-Remaining": "0",
                    "RateLimit-Reset": str(exc.retry_after),
                },
            )

        response = await call_next(request)

        # An inner (stricter) limiter has already reported its own window.
        if "RateLimit-Limit" not in response.headers:
            response.headers["RateLimit-Limit"] = str(state.limit)
            response.headers["RateLimit-Remaining"] = str(state.remaining)
            response.headers["RateLimit-Reset"] = str(state.reset_after)
        return response
