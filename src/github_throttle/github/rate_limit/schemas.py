"""Pydantic schemas for GitHub API rate limit data.

These schemas represent rate limit information from:
- GET /rate_limit API endpoint
- x-ratelimit-* response headers
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, Field, computed_field


class RateLimitPool(StrEnum):
    """GitHub rate limit resource pools.

    Each pool has its own separate quota. Most operations use 'core'.
    See: https://docs.github.com/en/rest/rate-limit/rate-limit
    """

    CORE = "core"
    SEARCH = "search"
    GRAPHQL = "graphql"
    CODE_SEARCH = "code_search"
    INTEGRATION_MANIFEST = "integration_manifest"
    DEPENDENCY_SNAPSHOTS = "dependency_snapshots"
    CODE_SCANNING_UPLOAD = "code_scanning_upload"
    ACTIONS_RUNNER_REGISTRATION = "actions_runner_registration"
    SCIM = "scim"


class RateLimitStatus(StrEnum):
    """Rate limit health status.

    Thresholds are configurable but defaults are:
    - HEALTHY: > 50% remaining
    - WARNING: 20-50% remaining
    - CRITICAL: 5-20% remaining
    - EXHAUSTED: 0 remaining
    """

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    EXHAUSTED = "exhausted"


def _header_int(headers: Mapping[str, str], name: str) -> int | None:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(float(raw.strip()))
    except ValueError:
        return None


class PoolRateLimit(BaseModel):
    """Quota state for one GitHub API resource pool."""

    pool: RateLimitPool = Field(description="Resource pool name")
    limit: int = Field(ge=0, description="Maximum requests allowed per window")
    remaining: int = Field(ge=0, description="Requests remaining in current window")
    used: int = Field(ge=0, description="Requests used in current window")
    reset_at: datetime = Field(description="UTC datetime when limit resets")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def usage_percent(self) -> float:
        """Percentage of rate limit consumed (0.0 to 100.0)."""
        if self.limit == 0:
            return 100.0
        return min(100.0, (self.used / self.limit) * 100)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def remaining_percent(self) -> float:
        """Percentage of rate limit remaining (0.0 to 100.0)."""
        if self.limit == 0:
            return 0.0
        return min(100.0, (self.remaining / self.limit) * 100)

    def seconds_until_reset(self, now: datetime | None = None) -> float:
        """Seconds until rate limit resets (0 if already past)."""
        delta = self.reset_at - (now or datetime.now(UTC))
        return max(0.0, delta.total_seconds())

    def get_status(
        self,
        healthy_threshold: float = 50.0,
        warning_threshold: float = 20.0,
        critical_threshold: float = 5.0,
    ) -> RateLimitStatus:
        """Determine rate limit health status.

        Args:
            healthy_threshold: % remaining above which is HEALTHY
            warning_threshold: % remaining above which is WARNING (below healthy)
            critical_threshold: % remaining above which is CRITICAL (below warning)

        Returns:
            RateLimitStatus enum value
        """
        if self.remaining == 0:
            return RateLimitStatus.EXHAUSTED
        if self.remaining_percent >= healthy_threshold:
            return RateLimitStatus.HEALTHY
        if self.remaining_percent >= warning_threshold:
            return RateLimitStatus.WARNING
        return RateLimitStatus.CRITICAL


class RateLimitSnapshot(BaseModel):
    """Point-in-time view of rate limit pools.

    Built either from the /rate_limit API or accumulated from response headers.
    """

    timestamp: datetime = Field(description="When this snapshot was taken")
    pools: dict[RateLimitPool, PoolRateLimit] = Field(
        default_factory=dict, description="Rate limits by pool"
    )

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> Self:
        """Parse from GitHub /rate_limit API response.

        Unknown pools in the response are ignored.

        Args:
            data: Raw API response dict with 'resources' key

        Returns:
            RateLimitSnapshot instance
        """
        pools: dict[RateLimitPool, PoolRateLimit] = {}
        resources = data.get("resources", {})

        for pool in RateLimitPool:
            if pool.value in resources:
                r = resources[pool.value]
                pools[pool] = PoolRateLimit(
                    pool=pool,
                    limit=r["limit"],
                    remaining=r["remaining"],
                    used=r["used"],
                    reset_at=datetime.fromtimestamp(r["reset"], tz=UTC),
                )

        return cls(timestamp=datetime.now(UTC), pools=pools)

    @classmethod
    def from_response_headers(
        cls,
        headers: Mapping[str, str],
        default_pool: RateLimitPool = RateLimitPool.CORE,
        now: datetime | None = None,
    ) -> Self | None:
        """Parse from HTTP response headers (lower-cased names).

        GitHub includes rate limit info in headers on every response:
        - x-ratelimit-limit
        - x-ratelimit-remaining
        - x-ratelimit-used
        - x-ratelimit-reset
        - x-ratelimit-resource (pool name)

        Args:
            headers: HTTP response headers
            default_pool: Pool used when x-ratelimit-resource is absent or unknown
            now: Snapshot timestamp (defaults to current time)

        Returns:
            Snapshot with a single pool, or None when limit/remaining are absent
        """
        limit = _header_int(headers, "x-ratelimit-limit")
        remaining = _header_int(headers, "x-ratelimit-remaining")
        if limit is None or remaining is None:
            return None

        try:
            pool = RateLimitPool(headers.get("x-ratelimit-resource", default_pool.value))
        except ValueError:
            pool = default_pool

        timestamp = now or datetime.now(UTC)
        used = _header_int(headers, "x-ratelimit-used")
        reset_ts = _header_int(headers, "x-ratelimit-reset") or 0
        reset_at = datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts > 0 else timestamp

        pool_limit = PoolRateLimit(
            pool=pool,
            limit=max(0, limit),
            remaining=max(0, remaining),
            used=max(0, used if used is not None else limit - remaining),
            reset_at=reset_at,
        )
        return cls(timestamp=timestamp, pools={pool: pool_limit})

    def get_pool(self, pool: RateLimitPool) -> PoolRateLimit | None:
        """Get rate limit for a specific pool."""
        return self.pools.get(pool)

    def get_core(self) -> PoolRateLimit | None:
        """Convenience accessor for core pool (most common)."""
        return self.pools.get(RateLimitPool.CORE)

    def merge(self, other: "RateLimitSnapshot") -> "RateLimitSnapshot":
        """Merge another snapshot into this one, keeping the other's pools on conflict."""
        merged_pools = dict(self.pools)
        merged_pools.update(other.pools)
        return RateLimitSnapshot(
            timestamp=max(self.timestamp, other.timestamp),
            pools=merged_pools,
        )
