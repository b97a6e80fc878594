"""Test fixtures for GitHub Throttle."""

from .rate_limit_responses import (
    HEADERS_CRITICAL,
    HEADERS_EXHAUSTED,
    HEADERS_HEALTHY,
    HEADERS_WARNING,
    RATE_LIMIT_RESPONSE_HEALTHY,
    make_rate_limit_headers,
    make_rate_limit_response,
)

__all__ = [
    # Response headers
    "HEADERS_CRITICAL",
    "HEADERS_EXHAUSTED",
    "HEADERS_HEALTHY",
    "HEADERS_WARNING",
    "make_rate_limit_headers",
    # GET /rate_limit bodies
    "RATE_LIMIT_RESPONSE_HEALTHY",
    "make_rate_limit_response",
]
