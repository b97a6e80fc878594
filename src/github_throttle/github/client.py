"""Async GitHub API client with rate-limited execution.

GitHubClient wires the default collaborators together: a RateLimitMonitor
fed from response headers, an AdaptivePacer reading that monitor, an
httpx transport, and the RateLimitedExecutor that drives them.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from github_throttle.config import Settings, get_settings
from github_throttle.logging import get_logger

from .backoff import Jitter
from .clock import Clock, SystemClock
from .credentials import extract_credential_key
from .executor import ExecutionResult, RateLimitedExecutor
from .pacing.pacer import AdaptivePacer
from .rate_limit.monitor import RateLimitMonitor
from .rate_limit.schemas import RateLimitSnapshot
from .request import PreparedRequest, RawResponse, build_request
from .transport import HttpxTransport, Transport

logger = get_logger(__name__)

T = TypeVar("T")


class GitHubClient:
    """Async GitHub REST API client.

    Usage:
        async with GitHubClient() as client:
            repo = await client.get("/repos/octocat/hello-world", dict[str, Any])
            snapshot = await client.get_rate_limit()

    Without a token, requests are sent unauthenticated and share the
    "anonymous" rate limit bucket.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        settings: Settings | None = None,
        rate_monitor: RateLimitMonitor | None = None,
        pacer: AdaptivePacer | None = None,
        transport: Transport | None = None,
        clock: Clock | None = None,
        jitter: Jitter | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub PAT. If not provided, uses GITHUB_TOKEN from settings.
            settings: Settings to read base URL, API version and tuning from.
            rate_monitor: RateLimitMonitor to use (one is created if omitted).
            pacer: AdaptivePacer to use (one reading rate_monitor is created if omitted).
            transport: Transport to send requests with (httpx if omitted).
            clock: Clock shared by all collaborators (system clock if omitted).
            jitter: Jitter function for the executor (full jitter if omitted).
        """
        self._settings = settings or get_settings()
        self._token = token if token is not None else self._settings.github_token
        self._clock = clock or SystemClock()

        self._rate_monitor = rate_monitor or RateLimitMonitor(
            self._settings.rate_limit, clock=self._clock
        )
        self._pacer = pacer or AdaptivePacer(
            self._rate_monitor, self._settings.pacing, clock=self._clock
        )

        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport(
            timeout=self._settings.executor.request_timeout_seconds
        )

        self._executor = RateLimitedExecutor(
            rate_limiter=self._rate_monitor,
            transport=self._transport,
            pacer=self._pacer,
            clock=self._clock,
            jitter=jitter,
            config=self._settings.executor,
            on_response=self._track_response,
        )

        if not self._token:
            logger.warning("No GitHub token configured; requests are unauthenticated")

    @property
    def rate_monitor(self) -> RateLimitMonitor:
        """Access the rate limit monitor."""
        return self._rate_monitor

    @property
    def pacer(self) -> AdaptivePacer:
        """Access the request pacer."""
        return self._pacer

    @property
    def executor(self) -> RateLimitedExecutor:
        """Access the rate-limited executor."""
        return self._executor

    def _track_response(self, key: str, response: RawResponse) -> None:
        self._rate_monitor.update_from_headers(key, response.headers)

    async def close(self) -> None:
        """Close the underlying transport if this client created it."""
        if self._owns_transport and isinstance(self._transport, HttpxTransport):
            await self._transport.close()

    async def __aenter__(self) -> GitHubClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Requests
    # -------------------------------------------------------------------------
    def prepare(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> PreparedRequest:
        """Build an authenticated request for an API path."""
        return build_request(
            method,
            path,
            base_url=self._settings.github_base_url,
            token=self._token,
            api_version=self._settings.github_api_version,
            params=params,
            json_body=json_body,
        )

    async def send(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> ExecutionResult:
        """Send a request and return the raw result (any non-rate-limit status)."""
        return await self._executor.send(
            self.prepare(method, path, params=params, json_body=json_body)
        )

    async def request(
        self,
        method: str,
        path: str,
        decode_to: type[T],
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
    ) -> T:
        """Send a request and decode the response body into decode_to.

        Raises:
            GitHubRateLimitError: Retry budget exhausted
            GitHubTransportError: No response obtained
            GitHubHTTPError: Non-2xx response (401/404 as their subclasses)
            GitHubDecodeError: Body does not match decode_to
        """
        return await self._executor.execute(
            self.prepare(method, path, params=params, json_body=json_body),
            decode_to,
        )

    async def get(
        self,
        path: str,
        decode_to: type[T],
        *,
        params: Mapping[str, Any] | None = None,
    ) -> T:
        """GET an API path and decode the response."""
        return await self.request("GET", path, decode_to, params=params)

    # -------------------------------------------------------------------------
    # Rate Limit Info
    # -------------------------------------------------------------------------
    async def get_rate_limit(self) -> RateLimitSnapshot:
        """Fetch GET /rate_limit and record it in the rate monitor.

        The /rate_limit endpoint does not count against the quota.
        """
        request = self.prepare("GET", "/rate_limit")
        data = await self._executor.execute(request, dict[str, Any])
        snapshot = RateLimitSnapshot.from_api_response(data)
        self._rate_monitor.update_snapshot(extract_credential_key(request.headers), snapshot)
        return snapshot
