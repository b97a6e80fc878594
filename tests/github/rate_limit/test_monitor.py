"""Unit tests for RateLimitMonitor class.

These tests verify admission decisions, failure backoff, passive header
tracking and per-credential isolation.
"""

from datetime import timedelta

import pytest
from loguru import logger

from github_throttle.config import RateLimitConfig
from github_throttle.github.rate_limit.monitor import RateLimitMonitor
from github_throttle.github.rate_limit.schemas import (
    RateLimitPool,
    RateLimitSnapshot,
    RateLimitStatus,
)
from github_throttle.github.throttle import RateLimiter
from tests.fakes import EPOCH, FakeClock
from tests.fixtures.rate_limit_responses import (
    HEADERS_CRITICAL,
    HEADERS_EXHAUSTED,
    HEADERS_HEALTHY,
    HEADERS_PARTIAL,
    HEADERS_SEARCH_POOL,
    HEADERS_WARNING,
    RATE_LIMIT_RESPONSE_HEALTHY,
    make_rate_limit_headers,
)

KEY = "ghp_monitor_test"


@pytest.fixture
def monitor(clock: FakeClock) -> RateLimitMonitor:
    return RateLimitMonitor(RateLimitConfig(), clock=clock)


class TestRateLimitMonitorInit:
    """Tests for monitor initialization."""

    def test_is_a_rate_limiter(self, monitor: RateLimitMonitor) -> None:
        assert isinstance(monitor, RateLimiter)

    def test_init_with_custom_config(self) -> None:
        """Monitor accepts custom configuration."""
        config = RateLimitConfig(
            healthy_threshold_pct=60.0,
            warning_threshold_pct=30.0,
            min_remaining_buffer=200,
        )
        monitor = RateLimitMonitor(config=config)
        assert monitor.config.healthy_threshold_pct == 60.0
        assert monitor.config.min_remaining_buffer == 200

    def test_unknown_key_is_healthy(self, monitor: RateLimitMonitor) -> None:
        assert monitor.get_status(KEY) == RateLimitStatus.HEALTHY
        assert monitor.get_pool_limit(KEY) is None
        assert monitor.time_until_reset(KEY) == 0.0
        assert monitor.consecutive_failures(KEY) == 0


class TestAdmission:
    """Tests for acquire()."""

    @pytest.mark.asyncio
    async def test_allows_without_data(self, monitor: RateLimitMonitor) -> None:
        decision = await monitor.acquire(KEY)
        assert decision.allowed is True
        assert decision.retry_after is None

    @pytest.mark.asyncio
    async def test_allows_with_healthy_quota(self, monitor: RateLimitMonitor) -> None:
        monitor.update_from_headers(KEY, HEADERS_HEALTHY)
        assert (await monitor.acquire(KEY)).allowed is True

    @pytest.mark.asyncio
    async def test_denies_until_reset_when_exhausted(self, monitor: RateLimitMonitor) -> None:
        """Exhausted quota denies with the time left until reset."""
        monitor.update_from_headers(KEY, HEADERS_EXHAUSTED)

        decision = await monitor.acquire(KEY)

        assert decision.allowed is False
        assert decision.retry_after == pytest.approx(300.0)

    @pytest.mark.asyncio
    async def test_allows_once_reset_passed(
        self, monitor: RateLimitMonitor, clock: FakeClock
    ) -> None:
        monitor.update_from_headers(KEY, HEADERS_EXHAUSTED)
        clock.advance(301)

        assert (await monitor.acquire(KEY)).allowed is True

    @pytest.mark.asyncio
    async def test_min_remaining_buffer(self, clock: FakeClock) -> None:
        """Quota at or below the buffer counts as exhausted."""
        monitor = RateLimitMonitor(RateLimitConfig(min_remaining_buffer=100), clock=clock)
        monitor.update_from_headers(KEY, make_rate_limit_headers(remaining=100))

        decision = await monitor.acquire(KEY)

        assert decision.allowed is False
        assert decision.retry_after == pytest.approx(3600.0)

    @pytest.mark.asyncio
    async def test_other_pool_does_not_block_core(self, monitor: RateLimitMonitor) -> None:
        monitor.update_from_headers(KEY, make_rate_limit_headers(remaining=0, resource="search"))
        assert (await monitor.acquire(KEY)).allowed is True


class TestFailureBackoff:
    """Tests for record_failure/record_success."""

    @pytest.mark.asyncio
    async def test_failure_sets_next_allowed(
        self, monitor: RateLimitMonitor, clock: FakeClock
    ) -> None:
        await monitor.record_failure(KEY)

        decision = await monitor.acquire(KEY)

        assert decision.allowed is False
        assert decision.retry_after is None
        assert decision.next_allowed_attempt == EPOCH + timedelta(seconds=1)

    @pytest.mark.asyncio
    async def test_backoff_grows_with_consecutive_failures(
        self, monitor: RateLimitMonitor
    ) -> None:
        """base * multiplier^(n-1): 1s, 2s, 4s."""
        for _ in range(3):
            await monitor.record_failure(KEY)

        decision = await monitor.acquire(KEY)

        assert monitor.consecutive_failures(KEY) == 3
        assert decision.next_allowed_attempt == EPOCH + timedelta(seconds=4)

    @pytest.mark.asyncio
    async def test_backoff_capped(self, clock: FakeClock) -> None:
        config = RateLimitConfig(max_failure_backoff_seconds=5.0)
        monitor = RateLimitMonitor(config, clock=clock)
        for _ in range(10):
            await monitor.record_failure(KEY)

        decision = await monitor.acquire(KEY)

        assert decision.next_allowed_attempt == EPOCH + timedelta(seconds=5)

    @pytest.mark.asyncio
    async def test_backoff_expires(self, monitor: RateLimitMonitor, clock: FakeClock) -> None:
        await monitor.record_failure(KEY)
        clock.advance(1.5)

        assert (await monitor.acquire(KEY)).allowed is True

    @pytest.mark.asyncio
    async def test_success_clears_backoff(self, monitor: RateLimitMonitor) -> None:
        await monitor.record_failure(KEY)
        await monitor.record_failure(KEY)
        await monitor.record_success(KEY)

        assert monitor.consecutive_failures(KEY) == 0
        assert (await monitor.acquire(KEY)).allowed is True

    @pytest.mark.asyncio
    async def test_successes_never_throttle(self, monitor: RateLimitMonitor) -> None:
        """Recording success, however often, never denies admission."""
        for _ in range(500):
            await monitor.record_success(KEY)

        assert (await monitor.acquire(KEY)).allowed is True

    @pytest.mark.asyncio
    async def test_keys_are_isolated(self, monitor: RateLimitMonitor) -> None:
        """Failures on one credential do not affect another."""
        await monitor.record_failure("token-a")
        monitor.update_from_headers("token-a", HEADERS_EXHAUSTED)

        assert (await monitor.acquire("token-a")).allowed is False
        assert (await monitor.acquire("token-b")).allowed is True


class TestPassiveTracking:
    """Tests for update_from_headers/update_snapshot."""

    def test_update_from_headers(self, monitor: RateLimitMonitor) -> None:
        monitor.update_from_headers(KEY, HEADERS_WARNING)

        core = monitor.get_pool_limit(KEY)
        assert core is not None
        assert core.remaining == 1500
        assert monitor.get_status(KEY) == RateLimitStatus.WARNING
        assert monitor.time_until_reset(KEY) == pytest.approx(1800.0)

    def test_headers_without_limits_ignored(self, monitor: RateLimitMonitor) -> None:
        monitor.update_from_headers(KEY, {"content-type": "application/json"})
        assert monitor.get_pool_limit(KEY) is None

    def test_partial_headers_tracked(self, monitor: RateLimitMonitor) -> None:
        monitor.update_from_headers(KEY, HEADERS_PARTIAL)

        core = monitor.get_pool_limit(KEY)
        assert core is not None
        assert core.remaining == 100
        assert core.used == 4900

    def test_tracking_disabled(self, clock: FakeClock) -> None:
        monitor = RateLimitMonitor(RateLimitConfig(track_from_headers=False), clock=clock)
        monitor.update_from_headers(KEY, HEADERS_EXHAUSTED)
        assert monitor.get_pool_limit(KEY) is None

    def test_pools_accumulate(self, monitor: RateLimitMonitor) -> None:
        monitor.update_from_headers(KEY, HEADERS_HEALTHY)
        monitor.update_from_headers(KEY, HEADERS_SEARCH_POOL)

        assert monitor.get_pool_limit(KEY, RateLimitPool.SEARCH) is not None
        assert monitor.get_pool_limit(KEY, RateLimitPool.CORE) is not None

    def test_latest_headers_win(self, monitor: RateLimitMonitor) -> None:
        monitor.update_from_headers(KEY, HEADERS_HEALTHY)
        monitor.update_from_headers(KEY, HEADERS_CRITICAL)
        assert monitor.get_status(KEY) == RateLimitStatus.CRITICAL

    def test_update_snapshot_from_api(self, monitor: RateLimitMonitor) -> None:
        snapshot = RateLimitSnapshot.from_api_response(RATE_LIMIT_RESPONSE_HEALTHY)
        monitor.update_snapshot(KEY, snapshot)

        core = monitor.get_pool_limit(KEY)
        assert core is not None
        assert core.remaining == 4500

    def test_warns_on_critical_transition(self, monitor: RateLimitMonitor) -> None:
        messages: list[str] = []
        handler_id = logger.add(lambda msg: messages.append(str(msg)), level="WARNING")
        try:
            monitor.update_from_headers(KEY, HEADERS_HEALTHY)
            monitor.update_from_headers(KEY, HEADERS_CRITICAL)
            monitor.update_from_headers(KEY, make_rate_limit_headers(remaining=240))
        finally:
            logger.remove(handler_id)

        warnings = [msg for msg in messages if "critical" in msg]
        assert len(warnings) == 1
        assert KEY not in "".join(messages)


class TestToDict:
    """Tests for state export."""

    @pytest.mark.asyncio
    async def test_to_dict_fingerprints_keys(self, monitor: RateLimitMonitor) -> None:
        monitor.update_from_headers(KEY, HEADERS_HEALTHY)
        await monitor.record_success(KEY)

        data = monitor.to_dict()

        assert KEY not in str(data)
        assert data["pool"] == "core"
        (entry,) = data["credentials"].values()
        assert entry["successes"] == 1
        assert entry["pools"]["core"]["remaining"] == 4500
        assert entry["pools"]["core"]["status"] == "healthy"
