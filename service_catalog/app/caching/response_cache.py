"""
In-process response cache for provider-backed endpoints.

Successful results are memoized per key for a bounded TTL. Failures,
whether raised or returned, are never stored and pass through untouched.
"""

import asyncio
import copy
import functools
import inspect
import json
import threading
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union, TYPE_CHECKING

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.responses import Response

from shared.errors import KeyDerivationError
from shared.logging import get_logger
from .keys import KeyStrategy, derive_key, request_key, validate_key_strategy

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass
class CacheEntry:
    """A stored payload and the wall-clock time it goes stale."""

    key: str
    payload: Any
    expires_at: float
    stored_at: float

    def is_fresh(self, now: float) -> bool:
        return now < self.expires_at


@dataclass(frozen=True)
class Success:
    """Downstream operation produced a cacheable JSON body."""

    payload: Any


@dataclass(frozen=True)
class Failure:
    """Downstream operation produced something that must not be cached.

    ``error`` is transmitted to the caller as-is.
    """

    error: Any
    status_code: int = 500


Outcome = Union[Success, Failure]


class _KeyGuard:
    __slots__ = ("lock", "waiters")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.waiters = 0


class ResponseCache:
    """Bounded LRU + TTL cache keyed by request identity."""

    def __init__(
        self,
        default_ttl: float = 300,
        max_entries: int = 1024,
        *,
        collapse_inflight: bool = True,
        clock: Callable[[], float] = time.time,
        metrics: Optional["MetricsCollector"] = None,
        name: str = "response",
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self.collapse_inflight = collapse_inflight
        self.name = name
        self.metrics = metrics
        self.logger = get_logger(f"catalog.cache.{name}")

        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        # Only touched from the event loop thread
        self._guards: Dict[str, _KeyGuard] = {}
        self._stats: Dict[str, int] = {
            "hits": 0,
            "misses": 0,
            "stores": 0,
            "evictions": 0,
            "failures": 0,
            "bypasses": 0,
            "collapsed": 0,
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        found, _ = self._lookup(key)
        return found

    def get(self, key: str) -> Optional[Any]:
        """Return the fresh payload for ``key`` or None."""
        _, payload = self.lookup(key)
        return payload

    def lookup(self, key: str) -> Tuple[bool, Any]:
        """Like get(), but tells a cached None apart from a miss."""
        found, payload = self._lookup(key)
        self._count("hits" if found else "misses")
        return found, payload

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the raw entry, stale or not, without touching recency."""
        with self._lock:
            return self._entries.get(key)

    def set(self, key: str, payload: Any, ttl: Optional[float] = None) -> CacheEntry:
        """Store ``payload`` under ``key``, replacing any previous entry."""
        ttl = self.default_ttl if ttl is None else ttl
        now = self._clock()
        entry = CacheEntry(key=key, payload=copy.deepcopy(payload), expires_at=now + ttl, stored_at=now)

        evicted = []
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted_key, _ = self._entries.popitem(last=False)
                evicted.append(evicted_key)

        self._count("stores")
        if evicted:
            self._count("evictions", len(evicted))
            self.logger.debug("Evicted least recently used entries", keys=evicted)
        self.logger.debug("Cached response", key=key, ttl=ttl)
        return entry

    def invalidate(self, key: str) -> bool:
        """Drop ``key``; returns whether an entry existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        """Drop every entry and return how many were removed."""
        with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        self.logger.info("Cleared response cache", cache=self.name, removed=removed)
        return removed

    def stats(self) -> Dict[str, Any]:
        """Counters plus current size and configuration."""
        with self._lock:
            counters = dict(self._stats)
            size = len(self._entries)
        lookups = counters["hits"] + counters["misses"]
        return {
            "cache": self.name,
            "size": size,
            "max_entries": self.max_entries,
            "default_ttl": self.default_ttl,
            "collapse_inflight": self.collapse_inflight,
            "inflight_keys": len(self._guards),
            "hit_ratio": counters["hits"] / lookups if lookups else 0.0,
            **counters,
        }

    async def resolve(
        self,
        key: str,
        operation: Callable[[], Awaitable[Outcome]],
        ttl: Optional[float] = None,
    ) -> Outcome:
        """Serve ``key`` from cache or run ``operation`` and store its success.

        Exceptions raised by ``operation`` propagate unchanged and leave the
        cache untouched.
        """
        found, payload = self._lookup(key)
        if found:
            self._count("hits")
            return Success(payload)
        self._count("misses")

        if not self.collapse_inflight:
            return await self._run(key, operation, ttl)

        async with self._key_guard(key):
            # A concurrent leader may have filled the entry while we waited
            found, payload = self._lookup(key)
            if found:
                self._count("collapsed")
                return Success(payload)
            return await self._run(key, operation, ttl)

    def cached(self, key: Optional[KeyStrategy] = None, ttl: Optional[float] = None):
        """Decorate an async FastAPI route handler with response caching.

        ``key`` is a fixed string, a callable taking the ``Request``, or None
        for :func:`request_key`. A plain return value or a 200 JSONResponse is
        cached; any other Response and any exception passes through.
        """
        strategy = request_key if key is None else validate_key_strategy(key)

        def decorator(handler: Callable[..., Awaitable[Any]]):
            request_param = _request_parameter(handler)
            if callable(strategy) and request_param is None:
                raise KeyDerivationError(
                    "Callable key strategies need a handler that accepts a Request",
                    details={"handler": handler.__name__},
                )

            @functools.wraps(handler)
            async def wrapper(*args, **kwargs):
                request = kwargs.get(request_param) if request_param else None
                try:
                    cache_key = derive_key(strategy, request)
                except KeyDerivationError as exc:
                    self._count("bypasses")
                    self.logger.warning(
                        "Cache key derivation failed, bypassing cache",
                        handler=handler.__name__,
                        error=exc.message,
                        details=exc.details,
                    )
                    return await handler(*args, **kwargs)

                produced = []

                async def operation() -> Outcome:
                    result = await handler(*args, **kwargs)
                    produced.append(result)
                    return to_outcome(result)

                outcome = await self.resolve(cache_key, operation, ttl)
                if produced:
                    # Miss: hand back exactly what the handler returned
                    return produced[-1]
                return outcome.payload

            return wrapper

        return decorator

    async def _run(self, key: str, operation: Callable[[], Awaitable[Outcome]], ttl: Optional[float]) -> Outcome:
        try:
            outcome = await operation()
        except Exception:
            self._count("failures")
            raise

        if isinstance(outcome, Success):
            self.set(key, outcome.payload, ttl)
        else:
            self._count("failures")
            self.logger.debug("Downstream failure not cached", key=key, status_code=outcome.status_code)
        return outcome

    def _lookup(self, key: str) -> Tuple[bool, Any]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            if not entry.is_fresh(now):
                del self._entries[key]
                return False, None
            self._entries.move_to_end(key)
            payload = entry.payload
        return True, copy.deepcopy(payload)

    @asynccontextmanager
    async def _key_guard(self, key: str):
        guard = self._guards.get(key)
        if guard is None:
            guard = self._guards[key] = _KeyGuard()
        guard.waiters += 1
        try:
            async with guard.lock:
                yield
        finally:
            guard.waiters -= 1
            if guard.waiters == 0 and self._guards.get(key) is guard:
                del self._guards[key]

    def _count(self, event: str, amount: int = 1) -> None:
        with self._lock:
            self._stats[event] += amount
        if self.metrics:
            for _ in range(amount):
                self.metrics.increment_counter(f"cache_{event}_total", cache_type=self.name)


def to_outcome(result: Any) -> Outcome:
    """Classify a route handler's return value."""
    if isinstance(result, Response):
        if isinstance(result, JSONResponse) and result.status_code == 200:
            return Success(json.loads(result.body))
        return Failure(result, result.status_code)
    return Success(result)


def _request_parameter(handler: Callable[..., Any]) -> Optional[str]:
    """Name of the handler parameter FastAPI fills with the Request."""
    for name, param in inspect.signature(handler).parameters.items():
        annotation = param.annotation
        if isinstance(annotation, type) and issubclass(annotation, Request):
            return name
    return None
