"""GitHub API client module.

This module provides:
- GitHubClient: Async GitHub API client wired with rate limiting and pacing
- RateLimitedExecutor: The acquire/pace/send/retry loop
- Collaborator contracts: RateLimiter, RequestPacer, Transport, Clock
- Default collaborators: RateLimitMonitor, AdaptivePacer, HttpxTransport, SystemClock
"""

from .backoff import FullJitter, rate_limit_wait
from .client import GitHubClient
from .clock import Clock, SystemClock
from .credentials import ANONYMOUS_KEY, credential_fingerprint, extract_credential_key
from .decoding import decode_response, raise_for_status
from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubDecodeError,
    GitHubHTTPError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubTransportError,
)
from .executor import (
    ExecutionResult,
    RateLimitedExecutor,
    ResponseOutcome,
    classify_response,
)
from .pacing import AdaptivePacer, PacerSlot
from .rate_limit import (
    PoolRateLimit,
    RateLimitMonitor,
    RateLimitPool,
    RateLimitSnapshot,
    RateLimitStatus,
)
from .request import PreparedRequest, RawResponse, build_request
from .throttle import (
    AcquisitionResult,
    PacingSlot,
    RateLimiter,
    RateLimitResult,
    RequestPacer,
    ThrottledClient,
)
from .transport import HttpxTransport, Transport

__all__ = [
    # Client
    "GitHubClient",
    # Execution
    "ExecutionResult",
    "RateLimitedExecutor",
    "ResponseOutcome",
    "classify_response",
    "decode_response",
    "raise_for_status",
    # Requests
    "PreparedRequest",
    "RawResponse",
    "build_request",
    # Credentials
    "ANONYMOUS_KEY",
    "credential_fingerprint",
    "extract_credential_key",
    # Backoff
    "FullJitter",
    "rate_limit_wait",
    # Exceptions
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubDecodeError",
    "GitHubHTTPError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubTransportError",
    # Collaborator contracts
    "AcquisitionResult",
    "Clock",
    "PacingSlot",
    "RateLimiter",
    "RateLimitResult",
    "RequestPacer",
    "ThrottledClient",
    "Transport",
    # Default collaborators
    "AdaptivePacer",
    "HttpxTransport",
    "PacerSlot",
    "RateLimitMonitor",
    "SystemClock",
    # Rate limit data
    "PoolRateLimit",
    "RateLimitPool",
    "RateLimitSnapshot",
    "RateLimitStatus",
]
