"""Rate-limited request execution.

RateLimitedExecutor sends a PreparedRequest while honoring GitHub's rate
limit contract. Per call:

    acquire -> (admission wait) -> pace -> send -> classify
        success       -> record success, return
        rate limited  -> record failure, back off, retry (bounded)
        transport err -> record failure, raise
        anything else -> return unchanged for the decoder

Admission and pacing waits are scheduling delays and do not consume the
retry budget; only server-signaled rate limits do.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, TypeVar

from github_throttle.config import ExecutorConfig, get_settings
from github_throttle.logging import bind_request

from .backoff import FullJitter, Jitter, parse_remaining, parse_reset, rate_limit_wait
from .clock import Clock, SystemClock
from .credentials import credential_fingerprint, extract_credential_key
from .decoding import decode_response
from .exceptions import GitHubRateLimitError, GitHubTransportError
from .request import PreparedRequest, RawResponse
from .throttle import RateLimiter, RequestPacer, ThrottledClient
from .transport import Transport

if TYPE_CHECKING:
    from loguru import Logger

T = TypeVar("T")

# Called with (credential key, response) after every response is received
ResponseHook = Callable[[str, RawResponse], None]

RATE_LIMIT_STATUSES = frozenset({403, 429})


class ResponseOutcome(StrEnum):
    """Classification of a received response."""

    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    PASSTHROUGH = "passthrough"


def classify_response(response: RawResponse) -> ResponseOutcome:
    """Classify a response by status code and rate limit headers.

    403/429 count as rate limited when the status is 429 or
    X-RateLimit-Remaining is 0 (a missing or invalid header reads as 0).
    """
    if response.is_success:
        return ResponseOutcome.SUCCESS
    if response.status_code in RATE_LIMIT_STATUSES:
        if response.status_code == 429 or parse_remaining(response.headers) == 0:
            return ResponseOutcome.RATE_LIMITED
    return ResponseOutcome.PASSTHROUGH


@dataclass(frozen=True)
class ExecutionResult:
    """Final response of a call plus what it took to get it.

    Attributes:
        response: The terminal response (2xx or passthrough)
        attempts: Rate-limit retries performed
        total_wait_seconds: Time spent in admission, pacing and backoff waits
        acquisitions: Admission acquisitions made
    """

    response: RawResponse
    attempts: int
    total_wait_seconds: float
    acquisitions: int

    @property
    def outcome(self) -> ResponseOutcome:
        return classify_response(self.response)


class RateLimitedExecutor:
    """Executes prepared requests under per-credential rate limiting.

    Usage:
        monitor = RateLimitMonitor()
        executor = RateLimitedExecutor(
            rate_limiter=monitor,
            pacer=AdaptivePacer(monitor),
            transport=HttpxTransport(),
        )
        repo = await executor.execute(request, GitHubRepository)

    Args:
        rate_limiter: Admission control, keyed by credential
        transport: Performs the network call
        pacer: Optional slot scheduling, keyed by credential
        clock: Source of time and sleep (system clock by default)
        jitter: Maps a base delay to the delay slept (full jitter by default)
        config: Executor configuration (uses settings if not provided)
        on_response: Hook called with (key, response) for every response received
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        transport: Transport,
        pacer: RequestPacer | None = None,
        *,
        clock: Clock | None = None,
        jitter: Jitter | None = None,
        config: ExecutorConfig | None = None,
        on_response: ResponseHook | None = None,
    ) -> None:
        self._clock = clock or SystemClock()
        self._throttle = ThrottledClient(rate_limiter, pacer, clock=self._clock)
        self._transport = transport
        self._jitter = jitter or FullJitter()
        self._config = config or get_settings().executor
        self._on_response = on_response

    @property
    def config(self) -> ExecutorConfig:
        return self._config

    async def execute(self, request: PreparedRequest, decode_to: type[T]) -> T:
        """Send a request and decode the successful response body.

        Raises:
            GitHubRateLimitError: Retry budget exhausted
            GitHubTransportError: No response obtained
            GitHubHTTPError: Non-2xx response that is not a rate limit
            GitHubDecodeError: Body does not match decode_to
        """
        result = await self.send(request)
        return decode_response(result.response, decode_to)

    async def send(self, request: PreparedRequest) -> ExecutionResult:
        """Send a request, waiting and retrying as rate limits require.

        The request is never modified; every retry resends the same value.

        Returns:
            ExecutionResult with the terminal response

        Raises:
            GitHubRateLimitError: Still rate limited after max_retries retries
            GitHubTransportError: No response obtained (not retried)
        """
        key = extract_credential_key(request.headers)
        log = bind_request(request.method, request.url, credential_fingerprint(key))

        attempt = 0
        acquisitions = 0
        total_wait = 0.0

        while True:
            acquisition = await self._throttle.acquire(key)
            acquisitions += 1

            if acquisition.admission_wait is not None:
                capped = min(acquisition.admission_wait, self._config.max_wait_seconds)
                delay = self._jitter(capped)
                log.debug("Admission denied, waiting {:.2f}s", delay)
                await self._clock.sleep(delay)
                total_wait += delay
                continue
            if not acquisition.can_proceed:
                log.debug("Admission denied without wait hint, proceeding")

            paced_from = self._clock.monotonic()
            await acquisition.wait_until_ready()
            total_wait += max(0.0, self._clock.monotonic() - paced_from)

            response = await self._send_once(request, key, log)

            outcome = classify_response(response)
            if outcome is ResponseOutcome.SUCCESS:
                await self._throttle.record_success(key)
                return ExecutionResult(response, attempt, total_wait, acquisitions)

            if outcome is ResponseOutcome.PASSTHROUGH:
                return ExecutionResult(response, attempt, total_wait, acquisitions)

            await self._throttle.record_failure(key)

            if attempt >= self._config.max_retries:
                log.error(
                    "Rate limit exceeded after {} retries (status {})",
                    attempt,
                    response.status_code,
                )
                raise GitHubRateLimitError(
                    f"GitHub rate limit exceeded after {attempt} retries",
                    attempts=attempt,
                    reset_at=parse_reset(response.headers),
                    total_wait_seconds=total_wait,
                )

            base, source = rate_limit_wait(
                response.headers, attempt, self._clock.now(), self._config
            )
            capped = min(base, self._config.max_wait_seconds)
            delay = min(self._jitter(capped), self._config.max_backoff_seconds)
            log.warning(
                "Rate limited (status {}), retry {}/{} in {:.2f}s (from {})",
                response.status_code,
                attempt + 1,
                self._config.max_retries,
                delay,
                source.value,
            )
            await self._clock.sleep(delay)
            total_wait += delay
            attempt += 1

    async def _send_once(self, request: PreparedRequest, key: str, log: Logger) -> RawResponse:
        try:
            response = await self._transport.send(request)
        except GitHubTransportError as e:
            log.warning("Transport failure: {}", e)
            await self._throttle.record_failure(key)
            raise
        except Exception as e:
            log.warning("Transport failure: {}", e)
            await self._throttle.record_failure(key)
            raise GitHubTransportError(f"{type(e).__name__}: {e}", cause=e) from e

        if self._on_response is not None:
            try:
                self._on_response(key, response)
            except Exception as e:
                # Tracking failures must not break API calls
                log.debug("Response hook failed: {}", e)

        return response
