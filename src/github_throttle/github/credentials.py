"""Per-credential identity keys.

The credential key partitions rate limiter and pacer state. It is the
secret itself, so it is only ever used as a map key: logs and exported
state use credential_fingerprint() instead.
"""

from __future__ import annotations

import hashlib
from collections.abc import Mapping

ANONYMOUS_KEY = "anonymous"

_TOKEN_PREFIX = "token "
_BEARER_PREFIX = "Bearer "


def extract_credential_key(headers: Mapping[str, str]) -> str:
    """Derive the credential key from request headers.

    "token X" and "Bearer X" yield X. Any other Authorization value is used
    whole as an opaque identity. A missing header yields "anonymous".

    Args:
        headers: Request headers (Authorization looked up case-insensitively)

    Returns:
        The credential key
    """
    auth_header = headers.get("Authorization")
    if auth_header is None:
        for name, value in headers.items():
            if name.lower() == "authorization":
                auth_header = value
                break

    if auth_header is None:
        return ANONYMOUS_KEY

    if auth_header.startswith(_TOKEN_PREFIX):
        return auth_header[len(_TOKEN_PREFIX) :]
    if auth_header.startswith(_BEARER_PREFIX):
        return auth_header[len(_BEARER_PREFIX) :]

    # TODO: strip further schemes (e.g. "Basic ") once multi-scheme support is defined
    return auth_header


def credential_fingerprint(key: str) -> str:
    """Short, non-reversible label for a credential key, safe to log."""
    if key == ANONYMOUS_KEY:
        return ANONYMOUS_KEY
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:8]
