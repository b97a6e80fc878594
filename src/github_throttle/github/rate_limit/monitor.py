"""Header-driven rate limiting for GitHub API credentials.

RateLimitMonitor is the default RateLimiter used by GitHubClient. It keeps
one state record per credential key:

- Passive quota tracking from x-ratelimit-* response headers (zero API cost)
- Admission denial while the tracked quota is exhausted (until reset)
- Failure backoff: base * multiplier^(consecutive_failures - 1), capped
- Per-key locking so concurrent calls on one credential never lose updates
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from github_throttle.config import RateLimitConfig, get_settings
from github_throttle.logging import get_logger

from ..clock import Clock, SystemClock
from ..credentials import credential_fingerprint
from ..throttle import RateLimitResult
from .schemas import PoolRateLimit, RateLimitPool, RateLimitSnapshot, RateLimitStatus

logger = get_logger(__name__)


@dataclass
class _CredentialState:
    """Mutable per-credential bookkeeping (guarded by its own lock)."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    snapshot: RateLimitSnapshot | None = None
    consecutive_failures: int = 0
    backoff_until: datetime | None = None
    total_successes: int = 0
    total_failures: int = 0


class RateLimitMonitor:
    """Tracks GitHub API quota and failure backoff per credential key.

    Usage:
        monitor = RateLimitMonitor()

        decision = await monitor.acquire(key)
        if decision.allowed:
            response = await transport.send(request)
            monitor.update_from_headers(key, response.headers)
            await monitor.record_success(key)

    In practice the executor drives acquire/record_* and GitHubClient feeds
    response headers in after every call.
    """

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        clock: Clock | None = None,
        pool: RateLimitPool = RateLimitPool.CORE,
    ) -> None:
        """Initialize the rate limit monitor.

        Args:
            config: Optional rate limit configuration (uses settings if not provided)
            clock: Clock for reset/backoff arithmetic (system clock by default)
            pool: Pool consulted for admission decisions
        """
        self._config = config or get_settings().rate_limit
        self._clock = clock or SystemClock()
        self._pool = pool
        self._states: dict[str, _CredentialState] = {}

    @property
    def config(self) -> RateLimitConfig:
        """Get the rate limit configuration."""
        return self._config

    def _state(self, key: str) -> _CredentialState:
        # No await between lookup and insert, so this is atomic on the event loop
        state = self._states.get(key)
        if state is None:
            state = _CredentialState()
            self._states[key] = state
        return state

    # -------------------------------------------------------------------------
    # RateLimiter protocol
    # -------------------------------------------------------------------------
    async def acquire(self, key: str) -> RateLimitResult:
        """Decide whether a call on this credential may proceed now."""
        state = self._state(key)
        async with state.lock:
            now = self._clock.now()

            if state.backoff_until is not None:
                if state.backoff_until > now:
                    return RateLimitResult(
                        allowed=False,
                        next_allowed_attempt=state.backoff_until,
                    )
                state.backoff_until = None

            limit = state.snapshot.get_pool(self._pool) if state.snapshot else None
            if limit is not None and limit.remaining <= self._config.min_remaining_buffer:
                wait = limit.seconds_until_reset(now)
                if wait > 0:
                    return RateLimitResult(allowed=False, retry_after=wait)

            return RateLimitResult(allowed=True)

    async def record_success(self, key: str) -> None:
        """Record a successful call. Clears failure backoff, never throttles."""
        state = self._state(key)
        async with state.lock:
            state.total_successes += 1
            state.consecutive_failures = 0
            state.backoff_until = None

    async def record_failure(self, key: str) -> None:
        """Record a failed call and extend the failure backoff."""
        state = self._state(key)
        async with state.lock:
            state.total_failures += 1
            state.consecutive_failures += 1
            backoff = self._failure_backoff(state.consecutive_failures)
            state.backoff_until = self._clock.now() + timedelta(seconds=backoff)
            logger.debug(
                "Failure recorded for credential {} (consecutive={}, backoff={:.2f}s)",
                credential_fingerprint(key),
                state.consecutive_failures,
                backoff,
            )

    def _failure_backoff(self, consecutive_failures: int) -> float:
        exponent = min(consecutive_failures - 1, 64)
        backoff = self._config.base_failure_backoff_seconds * (
            self._config.backoff_multiplier**exponent
        )
        return min(backoff, self._config.max_failure_backoff_seconds)

    # -------------------------------------------------------------------------
    # Passive Tracking (from Response Headers)
    # -------------------------------------------------------------------------
    def update_from_headers(self, key: str, headers: Mapping[str, str]) -> None:
        """Update the credential's quota from response headers.

        Responses without x-ratelimit-limit/remaining leave state untouched.

        Args:
            key: Credential key the response was obtained with
            headers: HTTP response headers (lower-cased names)
        """
        if not self._config.track_from_headers:
            return

        partial = RateLimitSnapshot.from_response_headers(
            headers, self._pool, now=self._clock.now()
        )
        if partial is not None:
            self.update_snapshot(key, partial)

    def update_snapshot(self, key: str, snapshot: RateLimitSnapshot) -> None:
        """Merge a snapshot (e.g. from GET /rate_limit) into the credential's state."""
        state = self._state(key)
        previous = self._status_of(state)
        state.snapshot = snapshot if state.snapshot is None else state.snapshot.merge(snapshot)
        current = self._status_of(state)

        if current != previous and current in (
            RateLimitStatus.CRITICAL,
            RateLimitStatus.EXHAUSTED,
        ):
            logger.warning(
                "Rate limit for credential {} is {}",
                credential_fingerprint(key),
                current.value,
            )

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    def get_pool_limit(
        self,
        key: str,
        pool: RateLimitPool | None = None,
    ) -> PoolRateLimit | None:
        """Get tracked quota for a credential (None if nothing tracked yet)."""
        state = self._states.get(key)
        if state is None or state.snapshot is None:
            return None
        return state.snapshot.get_pool(pool or self._pool)

    def get_status(
        self,
        key: str,
        pool: RateLimitPool | None = None,
    ) -> RateLimitStatus:
        """Get health status for a credential (HEALTHY if unknown)."""
        limit = self.get_pool_limit(key, pool)
        if limit is None:
            return RateLimitStatus.HEALTHY
        return self._status_for(limit)

    def time_until_reset(self, key: str, pool: RateLimitPool | None = None) -> float:
        """Seconds until the credential's quota resets (0 if unknown)."""
        limit = self.get_pool_limit(key, pool)
        if limit is None:
            return 0.0
        return limit.seconds_until_reset(self._clock.now())

    def consecutive_failures(self, key: str) -> int:
        """Consecutive failures recorded since the last success."""
        state = self._states.get(key)
        return state.consecutive_failures if state else 0

    def _status_for(self, limit: PoolRateLimit) -> RateLimitStatus:
        return limit.get_status(
            self._config.healthy_threshold_pct,
            self._config.warning_threshold_pct,
            self._config.critical_threshold_pct,
        )

    def _status_of(self, state: _CredentialState) -> RateLimitStatus:
        limit = state.snapshot.get_pool(self._pool) if state.snapshot else None
        return self._status_for(limit) if limit else RateLimitStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        """Export current state for logging/metrics (credentials fingerprinted)."""
        now = self._clock.now()
        credentials: dict[str, Any] = {}
        for key, state in self._states.items():
            pools: dict[str, Any] = {}
            if state.snapshot is not None:
                for pool, limit in state.snapshot.pools.items():
                    pools[pool.value] = {
                        "limit": limit.limit,
                        "remaining": limit.remaining,
                        "used": limit.used,
                        "remaining_percent": round(limit.remaining_percent, 2),
                        "reset_at": limit.reset_at.isoformat(),
                        "seconds_until_reset": round(limit.seconds_until_reset(now), 2),
                        "status": self._status_for(limit).value,
                    }
            credentials[credential_fingerprint(key)] = {
                "successes": state.total_successes,
                "failures": state.total_failures,
                "consecutive_failures": state.consecutive_failures,
                "backoff_until": state.backoff_until.isoformat() if state.backoff_until else None,
                "pools": pools,
            }
        return {"pool": self._pool.value, "credentials": credentials}
