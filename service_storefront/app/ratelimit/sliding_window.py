"""
Sliding window rate limiter for the storefront gateway.

Process-local and best effort: every admission check prunes expired records
for all clients, so memory stays bounded without a background sweeper.
"""

import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Any, Optional

from fastapi import Request

from shared.logging import get_logger


WINDOW_SECONDS = 3600
DEFAULT_MAX_REQUESTS = 100


@dataclass(frozen=True)
class RateDecision:
    """Outcome of a single admission check."""
    allowed: bool
    current_count: int
    limit: int
    remaining: int
    reset_in_seconds: int


class SlidingWindowRateLimiter:
    """Per-client request counter over a trailing one hour window."""

    def __init__(self, max_requests: int = DEFAULT_MAX_REQUESTS,
                 window_seconds: int = WINDOW_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._records: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("storefront.rate_limiter")

    def _prune(self, cutoff: float) -> None:
        # Caller holds the lock
        for client_id in list(self._records):
            timestamps = self._records[client_id]
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()
            if not timestamps:
                del self._records[client_id]

    def _reset_in(self, timestamps: Deque[float], now: float) -> int:
        if not timestamps:
            return self.window_seconds
        return max(0, int(timestamps[0] + self.window_seconds - now))

    def check(self, client_id: str) -> RateDecision:
        """Admit or deny one request; only admitted requests are recorded."""
        with self._lock:
            now = self._clock()
            self._prune(now - self.window_seconds)

            timestamps = self._records.get(client_id)
            current_count = len(timestamps) if timestamps else 0

            if current_count >= self.max_requests:
                decision = RateDecision(
                    allowed=False,
                    current_count=current_count,
                    limit=self.max_requests,
                    remaining=0,
                    reset_in_seconds=self._reset_in(timestamps, now),
                )
            else:
                timestamps = self._records.setdefault(client_id, deque())
                timestamps.append(now)
                decision = RateDecision(
                    allowed=True,
                    current_count=current_count + 1,
                    limit=self.max_requests,
                    remaining=self.max_requests - current_count - 1,
                    reset_in_seconds=self._reset_in(timestamps, now),
                )

        if not decision.allowed:
            self.logger.warning(
                "Rate limit exceeded",
                client_id=client_id,
                current_count=decision.current_count,
                limit=decision.limit
            )
        return decision

    def get_stats(self) -> Dict[str, Any]:
        """Window statistics, computed without pruning or recording."""
        with self._lock:
            cutoff = self._clock() - self.window_seconds
            counts = {
                client_id: sum(1 for ts in timestamps if ts > cutoff)
                for client_id, timestamps in self._records.items()
            }

        active = {client_id: count for client_id, count in counts.items() if count}
        return {
            "total_requests_last_hour": sum(active.values()),
            "unique_clients": len(active),
            "limit": self.max_requests,
            "window_seconds": self.window_seconds,
        }

    def reset(self, client_id: Optional[str] = None) -> None:
        """Forget records for one client, or for everyone."""
        with self._lock:
            if client_id is None:
                self._records.clear()
            else:
                self._records.pop(client_id, None)
        self.logger.info("Rate limit reset", client_id=client_id or "*")


def get_client_id(request: Request) -> str:
    """Identify the caller: first forwarded-for hop, then real IP headers, then the peer."""
    for header in ("X-Forwarded-For", "X-Real-IP", "Client-IP"):
        value = request.headers.get(header)
        if value:
            first = value.split(",")[0].strip()
            if first:
                return first

    if request.client and request.client.host:
        return request.client.host
    return "unknown"
