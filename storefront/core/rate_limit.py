"""
In-memory sliding-window rate limiting for abuse-prone endpoints
(login, registration, password reset, guest quote submission).
"""
import logging
import time
import threading
from collections import defaultdict

from fastapi import HTTPException, Request

from storefront.config import settings
from storefront.core.audit import log_rate_limit_exceeded
from storefront.core.metrics import metrics

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple in-memory rate limiter keyed by client identifier.

    Thread-safe implementation using defaultdict and locks.
    Old timestamps are pruned on every check and the number of
    tracked keys is capped at MAX_KEYS.
    """

    MAX_KEYS = settings.MAX_RATE_LIMIT_KEYS

    def __init__(self, window_seconds: int = settings.RATE_LIMIT_WINDOW):
        self._requests: dict = defaultdict(list)  # key -> [timestamps]
        self._lock = threading.Lock()
        self._window_seconds = window_seconds

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def _cleanup_key(self, key: str, now: float) -> None:
        """Drop timestamps that fell out of the window."""
        cutoff = now - self._window_seconds
        if key in self._requests:
            self._requests[key] = [t for t in self._requests[key] if t > cutoff]
            if not self._requests[key]:
                del self._requests[key]

    def _evict_oldest_key(self) -> None:
        """Evict the key with the oldest activity when at capacity."""
        if not self._requests:
            return
        oldest = min(
            self._requests.keys(),
            key=lambda k: min(self._requests[k]) if self._requests[k] else float("inf"),
        )
        del self._requests[oldest]

    @property
    def active_key_count(self) -> int:
        """Return the number of keys being tracked."""
        return len(self._requests)

    def check_rate_limit(self, key: str, limit: int) -> tuple[bool, int]:
        """Check if a request is within the rate limit and record it.

        Args:
            key: Client identifier (e.g. 'login:203.0.113.7')
            limit: Maximum requests allowed in window

        Returns:
            Tuple of (allowed, remaining)
        """
        if not key:
            key = "anonymous"

        with self._lock:
            now = time.time()
            self._cleanup_key(key, now)

            if len(self._requests) >= self.MAX_KEYS and key not in self._requests:
                self._evict_oldest_key()

            timestamps = self._requests.get(key, [])
            if len(timestamps) >= limit:
                return False, 0

            self._requests[key].append(now)
            return True, limit - len(self._requests[key])

    def reset(self) -> None:
        """Forget all tracked keys (useful for testing)."""
        with self._lock:
            self._requests.clear()


# Global rate limiter instance
rate_limiter = RateLimiter()


def client_address(request: Request) -> str:
    """Best-effort client address for rate limit keys."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"


def enforce_rate_limit(request: Request, limit_type: str, limit: int) -> None:
    """Raise 429 when the caller exceeded ``limit`` requests of ``limit_type``.

    Raises:
        HTTPException: 429 with a Retry-After header
    """
    if not settings.RATE_LIMIT_ENABLED:
        return

    address = client_address(request)
    allowed, remaining = rate_limiter.check_rate_limit(f"{limit_type}:{address}", limit)
    if allowed:
        return

    metrics.increment("rate_limit_exceeded")
    logger.warning(f"Rate limit exceeded for {limit_type} from {address}")
    log_rate_limit_exceeded(address, limit_type, limit)
    raise HTTPException(
        status_code=429,
        detail=f"Rate limit exceeded. Max {limit} requests per minute.",
        headers={"Retry-After": str(rate_limiter.window_seconds)},
    )
