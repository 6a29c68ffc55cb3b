"""Sliding-window request limiter keyed by client identity."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Optional


class SlidingWindowRateLimiter:
    def __init__(self, window_s: float = 60.0, max_requests: int = 20) -> None:
        if window_s <= 0 or max_requests <= 0:
            raise ValueError("window_s and max_requests must be positive")
        self.window_s = window_s
        self.max_requests = max_requests
        self._requests: dict[str, deque[float]] = {}
        self._lock = threading.Lock()

    def admit(self, identity: str, now: Optional[float] = None) -> bool:
        """Record a request for ``identity`` and return whether it is allowed."""
        if now is None:
            now = time.monotonic()
        with self._lock:
            timestamps = self._evict(identity, now)
            if len(timestamps) >= self.max_requests:
                return False
            timestamps.append(now)
            self._requests[identity] = timestamps
            return True

    def retry_after(self, identity: str, now: Optional[float] = None) -> float:
        """Seconds until ``identity`` gets a free slot again (0 if it has one)."""
        if now is None:
            now = time.monotonic()
        with self._lock:
            timestamps = self._evict(identity, now)
            if len(timestamps) < self.max_requests:
                return 0.0
            return max(0.0, timestamps[0] + self.window_s - now)

    def tracked_identities(self) -> int:
        with self._lock:
            return len(self._requests)

    def _evict(self, identity: str, now: float) -> deque[float]:
        timestamps = self._requests.get(identity)
        if timestamps is None:
            return deque()
        cutoff = now - self.window_s
        while timestamps and timestamps[0] <= cutoff:
            timestamps.popleft()
        if not timestamps:
            del self._requests[identity]
        return timestamps
