"""Network transport for prepared requests.

The executor depends only on the Transport protocol. HttpxTransport is the
live implementation; any failure to obtain a response is raised as
GitHubTransportError.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import httpx

from github_throttle.logging import get_logger

from .exceptions import GitHubTransportError
from .request import PreparedRequest, RawResponse

logger = get_logger(__name__)


@runtime_checkable
class Transport(Protocol):
    """Performs the network I/O for a prepared request."""

    async def send(self, request: PreparedRequest) -> RawResponse:
        """Send the request and return the response (any status).

        Raises:
            GitHubTransportError: If no response was obtained
        """
        ...


class HttpxTransport:
    """Transport backed by an httpx.AsyncClient.

    Usage:
        async with HttpxTransport(timeout=30.0) as transport:
            response = await transport.send(request)

    Args:
        client: Existing AsyncClient to use (not closed by this transport)
        timeout: Request timeout in seconds when creating a client
        transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def send(self, request: PreparedRequest) -> RawResponse:
        """Send the request through httpx."""
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                content=request.content,
            )
        except httpx.RequestError as e:
            logger.debug("Transport error for {} {}: {}", request.method, request.url, e)
            raise GitHubTransportError(f"{type(e).__name__}: {e}", cause=e) from e

        return RawResponse(
            status_code=response.status_code,
            headers=dict(response.headers.items()),
            content=response.content,
        )

    async def close(self) -> None:
        """Close the underlying client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpxTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()
