"""
Cache key derivation for request-scoped response caching.
"""

from typing import Callable, Union
from urllib.parse import urlencode

from fastapi import Request

from shared.errors import KeyDerivationError


KeyStrategy = Union[str, Callable[[Request], str]]


def request_key(request: Request) -> str:
    """Default key: method, path and query parameters sorted by name then value."""
    key = f"{request.method} {request.url.path}"
    params = sorted(request.query_params.multi_items())
    if params:
        key = f"{key}?{urlencode(params)}"
    return key


def validate_key_strategy(strategy: KeyStrategy) -> KeyStrategy:
    """Reject strategies that can never produce a key."""
    if callable(strategy):
        return strategy
    if isinstance(strategy, str) and strategy:
        return strategy
    raise KeyDerivationError(
        "Key strategy must be a non-empty string or a callable",
        details={"strategy": repr(strategy)},
    )


def derive_key(strategy: KeyStrategy, request: Request) -> str:
    """Apply a key strategy to a request."""
    if isinstance(strategy, str):
        return strategy

    try:
        key = strategy(request)
    except Exception as exc:
        raise KeyDerivationError(
            "Key strategy raised",
            details={"error": str(exc), "path": request.url.path},
        ) from exc

    if not isinstance(key, str) or not key:
        raise KeyDerivationError(
            "Key strategy returned an invalid key",
            details={"key": repr(key), "path": request.url.path},
        )
    return key
