"""
In-memory sliding-window rate limiter keyed by client address.

Each key keeps a log of attempt timestamps; an attempt is admitted when
fewer than `limit` attempts fall inside the trailing window.
"""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

from common.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """
    Result of one rate-limit check.

    Attributes:
        allowed: Whether the attempt was admitted (and recorded)
        remaining: Attempts left in the current window after this one
        retry_after: Seconds until the oldest attempt leaves the window (0 if allowed)
    """
    allowed: bool
    remaining: int
    retry_after: int


class SlidingWindowRateLimiter:
    """
    Thread-safe sliding-window log limiter.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize rate limiter.

        Args:
            limit: Maximum attempts per window
            window_seconds: Length of the sliding window
            clock: Monotonic time source (injectable for tests)
        """
        if limit < 1:
            raise ValueError("Rate limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("Rate limit window must be positive")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self.max_tracked_keys = 10_000

    def hit(self, key: str) -> RateLimitDecision:
        """
        Record an attempt for key if it fits in the window.

        Args:
            key: Client identifier (address)

        Returns:
            RateLimitDecision for this attempt
        """
        now = self._clock()

        with self._lock:
            if len(self._attempts) > self.max_tracked_keys:
                self._prune_locked(now)

            attempts = self._attempts.setdefault(key, deque())
            self._expire(attempts, now)

            if len(attempts) >= self.limit:
                retry_after = max(1, math.ceil(attempts[0] + self.window_seconds - now))
                return RateLimitDecision(allowed=False, remaining=0, retry_after=retry_after)

            attempts.append(now)
            return RateLimitDecision(
                allowed=True,
                remaining=self.limit - len(attempts),
                retry_after=0
            )

    def reset(self, key: str) -> None:
        """Forget all attempts recorded for key."""
        with self._lock:
            self._attempts.pop(key, None)

    def prune(self) -> int:
        """
        Drop keys with no attempts left in the window.

        Returns:
            Number of keys removed
        """
        with self._lock:
            return self._prune_locked(self._clock())

    def _prune_locked(self, now: float) -> int:
        stale = []
        for key, attempts in self._attempts.items():
            self._expire(attempts, now)
            if not attempts:
                stale.append(key)
        for key in stale:
            del self._attempts[key]

        if stale:
            logger.debug(f"Pruned {len(stale)} idle rate-limit key(s)")
        return len(stale)

    def _expire(self, attempts: Deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while attempts and attempts[0] <= cutoff:
            attempts.popleft()
