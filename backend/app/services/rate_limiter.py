import threading
import time
from collections import deque
from typing import Callable

from fastapi import Request

from ..config import AUTH_RATE_LIMIT_MAX_REQUESTS, AUTH_RATE_LIMIT_WINDOW_SECONDS
from ..utils.error_handlers import RateLimitError


class SlidingWindowRateLimiter:
    """
    At most `max_requests` hits per key inside any `window_s`-second window.
    In-process only; each worker keeps its own window.
    """

    def __init__(self, max_requests: int, window_s: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = int(max_requests)
        self.window_s = float(window_s)
        self._clock = clock
        self._lock = threading.Lock()
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        """Number of keys currently tracked."""
        with self._lock:
            return len(self._hits)

    def _sweep(self, cutoff: float) -> None:
        # Caller holds the lock. A key whose newest hit is outside the window is idle.
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def hit(self, key: str) -> bool:
        """Record one request for `key`; False once the key is over its limit."""
        now = self._clock()
        cutoff = now - self.window_s
        with self._lock:
            # At most one full sweep per window keeps idle clients from piling up.
            if now - self._last_sweep >= self.window_s:
                self._sweep(cutoff)
                self._last_sweep = now

            hits = self._hits.get(key)
            if hits is None:
                hits = self._hits[key] = deque()
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= self.max_requests:
                return False
            hits.append(now)
            return True

    def remaining(self, key: str) -> int:
        cutoff = self._clock() - self.window_s
        with self._lock:
            hits = self._hits.get(key) or ()
            return max(0, self.max_requests - sum(1 for t in hits if t > cutoff))

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


auth_limiter = SlidingWindowRateLimiter(AUTH_RATE_LIMIT_MAX_REQUESTS, AUTH_RATE_LIMIT_WINDOW_SECONDS)


def client_ip(request: Request) -> str:
    # Behind a proxy, run uvicorn with --proxy-headers so this is the real client.
    return request.client.host if request.client else "unknown"


def auth_rate_limit(request: Request) -> None:
    """Router dependency for /auth."""
    if not auth_limiter.hit(client_ip(request)):
        raise RateLimitError()
