"""Request and response values passed through the executor.

A PreparedRequest is built once by the caller and handed to the executor
unchanged; retries resend exactly the same value.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

import httpx

GITHUB_MEDIA_TYPE = "application/vnd.github+json"


def _lookup(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup."""
    value = headers.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in headers.items():
        if key.lower() == lowered:
            return candidate
    return None


@dataclass(frozen=True)
class PreparedRequest:
    """An immutable, fully-formed HTTP request.

    Attributes:
        method: HTTP method (upper case)
        url: Absolute target URL including query string
        headers: Read-only header mapping (includes Authorization when authenticated)
        content: Optional request body
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def header(self, name: str) -> str | None:
        """Get a header value by case-insensitive name."""
        return _lookup(self.headers, name)


@dataclass(frozen=True)
class RawResponse:
    """A completed HTTP response as returned by a Transport.

    Header names are stored lower-cased.
    """

    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
    content: bytes = b""

    def __post_init__(self) -> None:
        normalized = {key.lower(): value for key, value in self.headers.items()}
        object.__setattr__(self, "headers", MappingProxyType(normalized))

    def header(self, name: str) -> str | None:
        """Get a header value by case-insensitive name."""
        return self.headers.get(name.lower())

    @property
    def is_success(self) -> bool:
        """Whether the status code is 2xx."""
        return 200 <= self.status_code < 300

    def text(self) -> str:
        """Body decoded as UTF-8 (invalid bytes replaced)."""
        return self.content.decode("utf-8", errors="replace")


def build_request(
    method: str,
    path: str,
    *,
    base_url: str,
    token: str = "",
    api_version: str | None = None,
    params: Mapping[str, Any] | None = None,
    json_body: Any = None,
    headers: Mapping[str, str] | None = None,
) -> PreparedRequest:
    """Build a PreparedRequest against the GitHub REST API.

    Args:
        method: HTTP method
        path: API path (e.g. "/repos/octocat/hello-world") or absolute URL
        base_url: API base URL
        token: Bearer token (omitted from headers when empty)
        api_version: Value for X-GitHub-Api-Version
        params: Optional query parameters
        json_body: Optional JSON-serializable body
        headers: Extra headers (override the defaults)

    Returns:
        PreparedRequest ready for the executor
    """
    url = httpx.URL(base_url.rstrip("/") + "/").join(path.lstrip("/"))
    if params:
        url = url.copy_merge_params({k: v for k, v in params.items() if v is not None})

    request_headers: dict[str, str] = {"Accept": GITHUB_MEDIA_TYPE}
    if api_version:
        request_headers["X-GitHub-Api-Version"] = api_version
    if token:
        request_headers["Authorization"] = f"Bearer {token}"

    content: bytes | None = None
    if json_body is not None:
        content = json.dumps(json_body).encode("utf-8")
        request_headers["Content-Type"] = "application/json"

    if headers:
        request_headers.update(headers)

    return PreparedRequest(
        method=method,
        url=str(url),
        headers=request_headers,
        content=content,
    )
