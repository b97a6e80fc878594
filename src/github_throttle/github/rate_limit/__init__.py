"""Rate limit tracking for GitHub API credentials.

This module provides the default header-driven rate limiter used by the
executor, and the schemas for GitHub's rate limit data.
"""

from .monitor import RateLimitMonitor
from .schemas import (
    PoolRateLimit,
    RateLimitPool,
    RateLimitSnapshot,
    RateLimitStatus,
)

__all__ = [
    "PoolRateLimit",
    "RateLimitMonitor",
    "RateLimitPool",
    "RateLimitSnapshot",
    "RateLimitStatus",
]
