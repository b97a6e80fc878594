"""Per-credential request pacing.

AdaptivePacer hands out send slots spaced so that each credential runs at
no more than its target rate, slowing further as the tracked GitHub quota
drains.

Slot spacing:
    interval = max(1 / target_rate, adaptive_delay)
    adaptive_delay = time_until_reset / (remaining - buffer + burst) * throttle_multiplier

where throttle_multiplier increases as quota health decreases.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import TYPE_CHECKING

from github_throttle.config import PacingConfig, get_settings
from github_throttle.logging import get_logger

from ..clock import Clock, SystemClock
from ..rate_limit.schemas import PoolRateLimit, RateLimitStatus

if TYPE_CHECKING:
    from ..rate_limit.monitor import RateLimitMonitor

logger = get_logger(__name__)

_VELOCITY_WINDOW_SECONDS = 60.0


class PacerSlot:
    """A reserved send time on the pacer's monotonic timeline."""

    def __init__(self, ready_at: float, clock: Clock) -> None:
        self._ready_at = ready_at
        self._clock = clock

    @property
    def ready_at(self) -> float:
        return self._ready_at

    @property
    def delay(self) -> float:
        """Seconds until the slot arrives (0 when already due)."""
        return max(0.0, self._ready_at - self._clock.monotonic())

    async def wait_until_ready(self) -> None:
        delay = self.delay
        if delay > 0:
            logger.debug("Pacing: waiting {:.3f}s for slot", delay)
            await self._clock.sleep(delay)


class AdaptivePacer:
    """Schedules send slots per credential key.

    Slots for one key are reserved under that key's lock, so concurrent
    callers sharing a credential are spaced out rather than sent together.
    Different keys never share a lock.

    Usage:
        pacer = AdaptivePacer(monitor)

        slot = await pacer.acquire(key)
        await slot.wait_until_ready()
        # Make request...
    """

    def __init__(
        self,
        monitor: RateLimitMonitor | None = None,
        config: PacingConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the pacer.

        Args:
            monitor: Optional RateLimitMonitor to read quota state from
            config: Optional pacing configuration (uses settings if not provided)
            clock: Clock for slot arithmetic (system clock by default)
        """
        self._monitor = monitor
        self._config = config or get_settings().pacing
        self._clock = clock or SystemClock()

        self._next_slot: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._recent: dict[str, deque[float]] = {}

    @property
    def config(self) -> PacingConfig:
        """Get the pacing configuration."""
        return self._config

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # -------------------------------------------------------------------------
    # Slot Reservation
    # -------------------------------------------------------------------------
    async def acquire(self, key: str) -> PacerSlot:
        """Reserve the next send slot for a credential."""
        async with self._lock(key):
            now = self._clock.monotonic()
            ready_at = max(now, self._next_slot.get(key, now))
            self._next_slot[key] = ready_at + self.get_interval(key)
            self._track(key, ready_at)
        return PacerSlot(ready_at, self._clock)

    def _track(self, key: str, at: float) -> None:
        recent = self._recent.setdefault(key, deque())
        recent.append(at)
        cutoff = at - _VELOCITY_WINDOW_SECONDS
        while recent and recent[0] <= cutoff:
            recent.popleft()

    # -------------------------------------------------------------------------
    # Delay Calculation
    # -------------------------------------------------------------------------
    def get_interval(self, key: str) -> float:
        """Spacing in seconds between consecutive slots for a credential."""
        floor = max(self._config.target_interval, self._config.min_request_interval_ms / 1000)
        return max(floor, self.get_recommended_delay(key))

    def get_recommended_delay(self, key: str) -> float:
        """Adaptive delay from tracked quota (minimum interval when unknown)."""
        pool_limit = self._monitor.get_pool_limit(key) if self._monitor else None
        if pool_limit is None:
            return self._config.min_request_interval_ms / 1000
        return self._calculate_optimal_delay(pool_limit)

    def _calculate_optimal_delay(self, pool_limit: PoolRateLimit) -> float:
        """Spread the remaining quota evenly over the time left until reset.

        Formula:
            buffer = limit * reserve_buffer_pct
            effective = max(1, remaining - buffer + burst_allowance)
            delay = time_until_reset / effective * throttle_multiplier
        """
        min_delay = self._config.min_request_interval_ms / 1000
        max_delay = self._config.max_request_interval_ms / 1000

        seconds_until_reset = pool_limit.seconds_until_reset(self._clock.now())
        if seconds_until_reset <= 0:
            return min_delay

        buffer = int(pool_limit.limit * (self._config.reserve_buffer_pct / 100))
        effective_remaining = max(
            1, pool_limit.remaining - buffer + self._config.burst_allowance
        )

        base_delay = seconds_until_reset / effective_remaining
        multiplier = self._get_throttle_multiplier(pool_limit.get_status())
        return max(min_delay, min(base_delay * multiplier, max_delay))

    @staticmethod
    def _get_throttle_multiplier(status: RateLimitStatus) -> float:
        """Multiplier applied to the base delay by quota health.

        HEALTHY 1.0x, WARNING 1.5x, CRITICAL 2.0x, EXHAUSTED 4.0x.
        """
        multipliers = {
            RateLimitStatus.HEALTHY: 1.0,
            RateLimitStatus.WARNING: 1.5,
            RateLimitStatus.CRITICAL: 2.0,
            RateLimitStatus.EXHAUSTED: 4.0,
        }
        return multipliers.get(status, 1.0)

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------
    def requests_per_minute(self, key: str) -> float:
        """Slots reserved for a credential over the last 60 seconds."""
        recent = self._recent.get(key)
        if not recent:
            return 0.0
        cutoff = self._clock.monotonic() - _VELOCITY_WINDOW_SECONDS
        return float(sum(1 for at in recent if at > cutoff))

    def get_stats(self, key: str) -> dict[str, float | int | str | None]:
        """Pacer statistics for one credential."""
        pool_limit = self._monitor.get_pool_limit(key) if self._monitor else None
        status = pool_limit.get_status() if pool_limit else RateLimitStatus.HEALTHY
        next_slot = self._next_slot.get(key)
        backlog = max(0.0, next_slot - self._clock.monotonic()) if next_slot is not None else 0.0

        return {
            "requests_per_minute": round(self.requests_per_minute(key), 2),
            "interval_ms": round(self.get_interval(key) * 1000, 2),
            "throttle_multiplier": self._get_throttle_multiplier(status),
            "status": status.value,
            "remaining": pool_limit.remaining if pool_limit else None,
            "backlog_seconds": round(backlog, 3),
        }
