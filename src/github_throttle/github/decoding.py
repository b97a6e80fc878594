"""Response decoding and HTTP error mapping.

The executor hands non-rate-limit error responses through unchanged; this
module turns them into exceptions and decodes successful bodies with
pydantic.
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from .exceptions import (
    GitHubAuthenticationError,
    GitHubDecodeError,
    GitHubHTTPError,
    GitHubNotFoundError,
)
from .request import RawResponse

T = TypeVar("T")


@lru_cache(maxsize=128)
def _adapter(decode_to: Any) -> TypeAdapter[Any]:
    return TypeAdapter(decode_to)


def _error_message(response: RawResponse) -> str:
    """Extract GitHub's "message" field from an error body, if present."""
    try:
        body = json.loads(response.content)
    except ValueError:
        return response.text()[:200]
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return response.text()[:200]


def raise_for_status(response: RawResponse) -> None:
    """Raise the matching GitHubHTTPError for a non-2xx response."""
    if response.is_success:
        return

    status = response.status_code
    message = _error_message(response)

    if status == 401:
        raise GitHubAuthenticationError(f"Invalid GitHub token: {message}", response)
    if status == 404:
        raise GitHubNotFoundError(f"Not found: {message}", response)
    if status == 403:
        raise GitHubHTTPError(f"Access forbidden: {message}", response)
    raise GitHubHTTPError(f"GitHub API error ({status}): {message}", response)


def decode_response(response: RawResponse, decode_to: type[T]) -> T:
    """Decode a successful response body into decode_to.

    Args:
        response: Response returned by the executor
        decode_to: Any type pydantic can validate (models, list[Model], dict, ...)

    Returns:
        The decoded value (an empty body decodes as JSON null)

    Raises:
        GitHubHTTPError: Response status is not 2xx
        GitHubDecodeError: Body is not valid JSON for decode_to
    """
    raise_for_status(response)
    try:
        return _adapter(decode_to).validate_json(response.content or b"null")
    except ValidationError as e:
        raise GitHubDecodeError(
            f"Response does not match {getattr(decode_to, '__name__', decode_to)}: "
            f"{e.error_count()} validation error(s)",
            cause=e,
            response=response,
        ) from e
