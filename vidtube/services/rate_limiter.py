"""In-memory rate limiting for credential endpoints."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, Dict, Iterable, Tuple

from vidtube.core.exceptions import RateLimitExceededError


class InMemoryRateLimiter:
    """Sliding-window limiter keyed by arbitrary strings; single-node only."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits: Dict[str, Deque[float]] = {}
        self._longest_window = 0
        self._last_sweep = 0.0

    def _prune(self, key: str, window_seconds: int, now: float) -> Deque[float]:
        hits = self._hits.setdefault(key, deque())
        cutoff = now - window_seconds
        while hits and hits[0] < cutoff:
            hits.popleft()
        return hits

    def _sweep(self, now: float) -> None:
        # Keys are client-controlled, so idle ones must not pile up
        if now - self._last_sweep < self._longest_window:
            return
        self._last_sweep = now
        cutoff = now - self._longest_window
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] < cutoff]
        for key in stale:
            del self._hits[key]

    def allow(self, key: str, limit: int, window_seconds: int) -> bool:
        now = time.time()
        with self._lock:
            self._longest_window = max(self._longest_window, window_seconds)
            self._sweep(now)
            hits = self._prune(key, window_seconds, now)
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def enforce(self, scope: str, client: str, rules: Iterable[Tuple[int, int]], message: str) -> None:
        """
        Count one attempt against every (limit, window_seconds) rule

        Raises:
            RateLimitExceededError: If any rule is exhausted
        """
        for limit, window_seconds in rules:
            if not self.allow(f"{scope}:{window_seconds}:{client}", limit, window_seconds):
                raise RateLimitExceededError(message)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()
            self._last_sweep = 0.0


rate_limiter = InMemoryRateLimiter()
