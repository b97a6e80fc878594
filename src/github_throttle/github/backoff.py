"""Backoff helpers: full jitter and rate-limit header parsing.

Wait-time priority after a rate-limited response:
    Retry-After  ->  X-RateLimit-Reset  ->  exponential fallback

A header that is missing or does not parse counts as absent and falls
through to the next source.
"""

from __future__ import annotations

import math
import random
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from enum import StrEnum

from github_throttle.config import ExecutorConfig

# Callable mapping a base delay (seconds) to the delay actually slept
Jitter = Callable[[float], float]

REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"
RETRY_AFTER_HEADER = "retry-after"


class WaitSource(StrEnum):
    """Where a post-failure wait time came from."""

    RETRY_AFTER = "retry_after"
    RESET = "reset"
    EXPONENTIAL = "exponential"


class FullJitter:
    """Full jitter: a uniform random delay in [0, base_delay].

    Decorrelates retries of concurrent callers that were throttled at the
    same moment. Pass a seeded random.Random for deterministic runs.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def __call__(self, base_delay: float) -> float:
        if base_delay <= 0:
            return 0.0
        return min(base_delay, max(0.0, self._rng.uniform(0.0, base_delay)))


def _get(headers: Mapping[str, str], name: str) -> str | None:
    value = headers.get(name)
    if value is not None:
        return value
    for key, candidate in headers.items():
        if key.lower() == name:
            return candidate
    return None


def _parse_float(raw: str | None) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw.strip())
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_remaining(headers: Mapping[str, str]) -> int:
    """Parse X-RateLimit-Remaining, defaulting to 0 when missing or invalid."""
    raw = _get(headers, REMAINING_HEADER)
    if raw is None:
        return 0
    try:
        return int(raw.strip())
    except ValueError:
        return 0


def parse_reset(headers: Mapping[str, str]) -> datetime | None:
    """Parse X-RateLimit-Reset (Unix seconds) into an aware UTC datetime."""
    value = _parse_float(_get(headers, RESET_HEADER))
    if value is None:
        return None
    try:
        return datetime.fromtimestamp(value, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return None


def parse_retry_after(headers: Mapping[str, str]) -> float | None:
    """Parse Retry-After as a seconds count (negative counts as absent)."""
    value = _parse_float(_get(headers, RETRY_AFTER_HEADER))
    if value is None or value < 0:
        return None
    return value


def exponential_fallback(attempt: int, config: ExecutorConfig) -> float:
    """Fallback wait when the server gives no hint: min(2^attempt * base, cap)."""
    # Exponent clamped so large attempt counts cannot overflow
    return min(2.0 ** min(attempt, 64) * config.fallback_base_seconds, config.fallback_cap_seconds)


def rate_limit_wait(
    headers: Mapping[str, str],
    attempt: int,
    now: datetime,
    config: ExecutorConfig,
) -> tuple[float, WaitSource]:
    """Compute the pre-jitter wait after a rate-limited response.

    Args:
        headers: Response headers
        attempt: Retries already performed for this call
        now: Current wall-clock time (aware UTC)
        config: Executor configuration

    Returns:
        Tuple of (seconds, source)
    """
    retry_after = parse_retry_after(headers)
    if retry_after is not None:
        return retry_after, WaitSource.RETRY_AFTER

    reset_at = parse_reset(headers)
    if reset_at is not None:
        return max(1.0, (reset_at - now).total_seconds()), WaitSource.RESET

    return exponential_fallback(attempt, config), WaitSource.EXPONENTIAL
