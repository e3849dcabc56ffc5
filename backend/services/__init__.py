"""Business logic services."""

from .rate_limiter import (
    RateLimitDecision,
    RateLimitMiddleware,
    RateLimiter,
    get_rate_limiter,
    set_rate_limiter,
)

__all__ = [
    "RateLimiter",
    "RateLimitDecision",
    "RateLimitMiddleware",
    "get_rate_limiter",
    "set_rate_limiter",
]
