"""
Rate limiting package for the storefront gateway.

Holds the in-process sliding window limiter that enforces a per-client
hourly request budget.
"""

from .sliding_window import RateDecision, SlidingWindowRateLimiter, get_client_id

__all__ = [
    "RateDecision",
    "SlidingWindowRateLimiter",
    "get_client_id",
]
