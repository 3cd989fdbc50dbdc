"""
In-memory rate limiting for checkout creation.

Every POST /checkout spawns a poll loop against the RPC node, so creation is
throttled per client IP with a sliding-window counter.
Not shared across worker processes.
"""
import time
import logging
from collections import defaultdict, deque
from typing import Callable

from fastapi import Request

from domain.errors import RateLimitError

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window rate limiter keyed by (IP, route).

    `clock` is injectable so tests can move time without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)

    def _expire(self, key: str, window_seconds: float) -> deque[float]:
        hits = self._hits[key]
        cutoff = self._clock() - window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def check(self, key: str, max_requests: int, window_seconds: float) -> bool:
        """Record a hit for `key` if allowed; False once the window is full."""
        hits = self._expire(key, window_seconds)
        if len(hits) >= max_requests:
            return False
        hits.append(self._clock())
        return True

    def remaining(self, key: str, max_requests: int, window_seconds: float) -> int:
        return max(0, max_requests - len(self._expire(key, window_seconds)))

    def reset(self) -> None:
        self._hits.clear()


_limiter = RateLimiter()


def get_limiter() -> RateLimiter:
    return _limiter


def rate_limit(max_requests: int | Callable[[], int], window_seconds: int | Callable[[], int]):
    """
    FastAPI dependency factory.

    Limits may be given as callables so they are read from settings per
    request rather than frozen at import time.

    Usage:
        @router.post("/checkout", dependencies=[Depends(rate_limit(10, 60))])
    """
    async def _check_rate_limit(request: Request):
        limit = max_requests() if callable(max_requests) else max_requests
        window = window_seconds() if callable(window_seconds) else window_seconds

        client_ip = request.client.host if request.client else "unknown"
        key = f"{client_ip}:{request.url.path}"

        if not _limiter.check(key, limit, window):
            logger.warning(f"Rate limit exceeded: {client_ip} on {request.url.path} ({limit}/{window}s)")
            raise RateLimitError(
                f"Rate limit exceeded. Maximum {limit} requests per {window} seconds.",
                details={"limit": limit, "windowSeconds": window},
                headers={
                    "Retry-After": str(window),
                    "X-RateLimit-Limit": str(limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

    return _check_rate_limit
