"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit,
  and all state is lost on restart.
- Thread-safe: prune, compare and append for a key happen under one lock, so
  two simultaneous requests from the same client cannot both slip under the
  ceiling.
"""

from __future__ import annotations

import math
import threading
import time
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter keeping a log of request timestamps per key.

    Each key maps to the millisecond timestamps of its admitted requests.
    On every access the log is filtered down to the trailing window; a
    request is admitted when fewer than ``limit`` timestamps survive.
    Rejected requests are not recorded.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_ms: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            limit: Maximum number of requests per window.
            window_ms: Size of the sliding window in milliseconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_ms are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_ms < 1:
            raise ValueError("window_ms must be >= 1")

        self._limit = limit
        self._window_ms = window_ms
        self._clock = clock
        self._lock = threading.Lock()
        self._timestamps_by_key: dict[str, list[int]] = {}

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _prune(self, timestamps: list[int], now_ms: int) -> list[int]:
        """Keep only timestamps strictly inside the trailing window."""
        cutoff = now_ms - self._window_ms
        return [ts for ts in timestamps if ts > cutoff]

    def consume(self, key: str) -> RateLimitResult:
        """Check the budget for ``key`` and record the request when allowed.

        Args:
            key: Unique identifier for rate limiting (e.g., client IP).

        Returns:
            RateLimitResult with allowance decision and metadata.

        Raises:
            ValueError: If key is empty.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            now_ms = self._now_ms()
            timestamps = self._prune(self._timestamps_by_key.get(key, []), now_ms)

            if len(timestamps) >= self._limit:
                # Pruned log is stored back; the rejected request is not added.
                self._timestamps_by_key[key] = timestamps
                expires_at_ms = timestamps[0] + self._window_ms
                return RateLimitResult(
                    allowed=False,
                    limit=self._limit,
                    remaining=0,
                    reset_at=int(math.ceil(expires_at_ms / 1000)),
                    retry_after_seconds=max(1, int(math.ceil((expires_at_ms - now_ms) / 1000))),
                )

            timestamps.append(now_ms)
            self._timestamps_by_key[key] = timestamps
            return RateLimitResult(
                allowed=True,
                limit=self._limit,
                remaining=self._limit - len(timestamps),
                reset_at=int(math.ceil((timestamps[0] + self._window_ms) / 1000)),
                retry_after_seconds=None,
            )

    def count(self, key: str) -> int:
        """Return how many requests from ``key`` fall inside the current window."""
        with self._lock:
            return len(self._prune(self._timestamps_by_key.get(key, []), self._now_ms()))

    def reset(self) -> None:
        with self._lock:
            self._timestamps_by_key.clear()
