"""
TMDB metadata provider client for the catalog service.
"""

import time
from typing import Any, Dict, Optional, TYPE_CHECKING

import httpx

from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.errors import ExternalServiceError, NotFoundError
from shared.logging import get_logger
from shared.retry import RetryConfig, RetryError, retry_on_exception

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


PROVIDER = "tmdb"
DEFAULT_RETRY = RetryConfig(max_attempts=3, base_delay=0.5, max_delay=5.0, jitter=True)


class TMDBClient:
    """Thin async wrapper around the TMDB v3 REST API.

    Every call carries the API key, is retried on transport errors and is
    guarded by a circuit breaker. Provider failures surface as
    :class:`ExternalServiceError`; a provider 404 surfaces as
    :class:`NotFoundError`.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
        metrics: Optional["MetricsCollector"] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.metrics = metrics
        self.logger = get_logger("catalog.tmdb_client")

        if not api_key:
            self.logger.warning("TMDB API key is not configured; provider calls will be rejected")

        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=5,
            recovery_timeout=30.0,
            expected_exception=(RetryError, ExternalServiceError),
            name=PROVIDER,
        )
        self._fetch_with_retry = retry_on_exception(
            (httpx.TransportError,),
            config=retry_config or DEFAULT_RETRY,
        )(self._fetch)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET a provider resource and return its decoded JSON body."""
        query = {name: value for name, value in (params or {}).items() if value is not None}
        query["api_key"] = self.api_key

        try:
            return await self.circuit_breaker.call(self._fetch_with_retry, path, query)
        except CircuitBreakerOpenException as exc:
            raise ExternalServiceError(
                service=PROVIDER,
                message="Provider temporarily unavailable",
                details={"path": path},
            ) from exc
        except RetryError as exc:
            self.logger.error("TMDB request failed after retries", path=path, error=str(exc.last_exception))
            raise ExternalServiceError(
                service=PROVIDER,
                message=str(exc.last_exception),
                details={"path": path, "attempts": exc.attempts},
            ) from exc

    async def check_health(self) -> str:
        """Report the circuit state as a dependency status."""
        return "error" if self.circuit_breaker.is_open() else "ok"

    async def _fetch(self, path: str, query: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        safe_params = {name: value for name, value in query.items() if name != "api_key"}

        start = time.perf_counter()
        response = await self._client.get(url, params=query)
        duration = time.perf_counter() - start
        if self.metrics:
            self.metrics.record_upstream_request(PROVIDER, response.status_code, duration)

        if response.status_code == 200:
            try:
                data = response.json()
            except ValueError as exc:
                raise ExternalServiceError(
                    service=PROVIDER,
                    message="Provider returned invalid JSON",
                    details={"path": path},
                ) from exc
            self.logger.debug("TMDB resource retrieved", path=path, params=safe_params)
            return data

        if response.status_code == 404:
            self.logger.info("TMDB resource not found", path=path, params=safe_params)
            raise NotFoundError("Title not found", details={"path": path})

        self.logger.error(
            "TMDB request failed",
            path=path,
            params=safe_params,
            status_code=response.status_code,
            response=response.text[:500],
        )
        raise ExternalServiceError(
            service=PROVIDER,
            message=f"Unexpected status {response.status_code}",
            details={"path": path, "status_code": response.status_code},
        )
