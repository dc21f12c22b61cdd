"""Token-bucket rate limiting keyed by arbitrary strings."""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod

DEFAULT_RATE = 10.0
DEFAULT_BURST = 20


class RateLimiter(ABC):
    """Interface for keyed rate limiters."""

    @abstractmethod
    def allow(self, key: str) -> bool:
        """Return whether one request for ``key`` is allowed."""

    @abstractmethod
    def allow_n(self, key: str, n: int) -> bool:
        """Return whether ``n`` requests for ``key`` are allowed."""

    @abstractmethod
    def reset(self, key: str) -> None:
        """Forget the state kept for ``key``."""


class TokenBucket:
    """A bucket of up to ``burst`` tokens refilled at ``rate`` per second."""

    def __init__(self, rate: float, burst: int) -> None:
        self.rate = float(rate)
        self.burst = int(burst)
        self._tokens = float(burst)
        self._last = time.monotonic()
        self._lock = threading.Lock()

    def allow(self) -> bool:
        return self.allow_n(1)

    def allow_n(self, n: int) -> bool:
        """Take ``n`` tokens if available and report whether it succeeded."""
        with self._lock:
            now = time.monotonic()
            elapsed = max(0.0, now - self._last)
            tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
            if n > self.burst or tokens < n:
                return False
            self._tokens = tokens - n
            self._last = now
            return True


class MemoryRateLimiter(RateLimiter):
    """Keeps one token bucket per key in memory."""

    def __init__(self) -> None:
        self._limiters: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()
        self._rate = DEFAULT_RATE
        self._burst = DEFAULT_BURST

    def set_rate(self, rate: float, burst: int) -> None:
        """Set rate and burst for buckets created from now on."""
        with self._lock:
            self._rate = float(rate)
            self._burst = int(burst)

    def _limiter(self, key: str) -> TokenBucket:
        with self._lock:
            limiter = self._limiters.get(key)
            if limiter is None:
                limiter = TokenBucket(self._rate, self._burst)
                self._limiters[key] = limiter
            return limiter

    def allow(self, key: str) -> bool:
        return self._limiter(key).allow()

    def allow_n(self, key: str, n: int) -> bool:
        return self._limiter(key).allow_n(n)

    def reset(self, key: str) -> None:
        with self._lock:
            self._limiters.pop(key, None)

    def cleanup(self) -> None:
        """Drop every bucket."""
        with self._lock:
            self._limiters = {}