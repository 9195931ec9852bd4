"""
Catalog caching package.

Provides the in-process response cache used by the catalog routes to
short-circuit repeated provider fetches. Only successful JSON outcomes are
stored; entries expire by TTL and are bounded by LRU eviction.
"""

from .keys import KeyStrategy, derive_key, request_key, validate_key_strategy
from .response_cache import CacheEntry, Failure, Outcome, ResponseCache, Success, to_outcome

__all__ = [
    "CacheEntry",
    "Failure",
    "KeyStrategy",
    "Outcome",
    "ResponseCache",
    "Success",
    "derive_key",
    "request_key",
    "to_outcome",
    "validate_key_strategy",
]
