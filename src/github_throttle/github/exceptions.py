"""GitHub client exceptions."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .request import RawResponse


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    pass


class GitHubRateLimitError(GitHubClientError):
    """Raised when server-signaled rate limits outlast the retry budget.

    Attributes:
        attempts: Number of retries performed before giving up
        reset_at: Server-advertised reset time of the last response, if any
        total_wait_seconds: Total time spent waiting during the call
    """

    def __init__(
        self,
        message: str,
        attempts: int = 0,
        reset_at: datetime | None = None,
        total_wait_seconds: float = 0.0,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.reset_at = reset_at
        self.total_wait_seconds = total_wait_seconds


class GitHubTransportError(GitHubClientError):
    """Raised when no response could be obtained from the server."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class GitHubDecodeError(GitHubClientError):
    """Raised when a response body does not match the expected shape."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        response: RawResponse | None = None,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.response = response


class GitHubHTTPError(GitHubClientError):
    """Raised by the decoding layer for a non-2xx response that is not a rate limit."""

    def __init__(self, message: str, response: RawResponse) -> None:
        super().__init__(message)
        self.response = response

    @property
    def status_code(self) -> int:
        """HTTP status code of the failed response."""
        return self.response.status_code


class GitHubAuthenticationError(GitHubHTTPError):
    """Raised when authentication fails (401)."""

    pass


class GitHubNotFoundError(GitHubHTTPError):
    """Raised when a resource is not found (404)."""

    pass
