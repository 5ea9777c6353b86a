"""
Base adapter for external stats sources.

The base adapter provides:
- Lazy shared httpx.AsyncClient per adapter (closed via close())
- Shared retry logic with exponential backoff (tenacity)
- Circuit breaker hook: subclasses wrap the raw request with the
  breaker for their upstream
- Politeness delay between consecutive calls
- Request metrics

Usage:
    class ExampleAdapter(BaseSourceAdapter):
        source_name = "example"

        def _default_headers(self):
            return {"x-api-key": self.api_key}

        @example_breaker
        async def _guarded_request(self, path, params=None):
            return await self._request_json(path, params)

        @retry(...)
        async def _fetch_with_breaker(self, path, params=None):
            return await self._guarded_request(path, params)

    adapter = ExampleAdapter(api_key="...", base_url="https://api.example.com")
    data = await adapter._fetch_json("/players", {"search": "Guler"})
    await adapter.close()
"""
import asyncio
from typing import Any, Dict, Optional

import httpx

from app.core.exceptions import ConfigurationError, SourceError
from app.core.logging import get_logger
from app.core.metrics import record_external_request
from app.services.core.circuit_breaker import CircuitBreakerError

logger = get_logger(__name__)

# Exceptions surfaced by the raw fetch
HTTP_EXCEPTIONS = (httpx.HTTPStatusError, httpx.RequestError, httpx.TimeoutException)


def is_retryable_error(exc: BaseException) -> bool:
    """Retry network errors and 5xx/429 responses; other 4xx are final."""
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status >= 500 or status == 429
    return isinstance(exc, (httpx.RequestError, httpx.TimeoutException))


class BaseSourceAdapter:
    """
    Base class for adapters that fetch JSON from an external sports source.

    Attributes:
        api_key: Credential for the source (None disables the adapter)
        base_url: Source base URL
        request_delay: Seconds to sleep between consecutive per-athlete calls
    """

    source_name = "base"
    config_key_name = "API_KEY"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "",
        timeout: float = 30.0,
        request_delay: float = 0.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.request_delay = request_delay
        self._client = client
        self._owns_client = client is None

    # ========================================================================
    # Configuration
    # ========================================================================

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def require_configured(self) -> None:
        """
        Raises:
            ConfigurationError: If the source credential is missing
        """
        if not self.is_configured:
            raise ConfigurationError(f"{self.config_key_name} not configured")

    def _default_headers(self) -> Dict[str, str]:
        return {}

    # ========================================================================
    # HTTP
    # ========================================================================

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}{path}"

    async def _request_json(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        method: str = "GET",
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Perform one HTTP request and decode the JSON body.

        ``headers`` are merged over the adapter defaults.

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
            httpx.RequestError: On network errors
        """
        client = await self._get_client()
        try:
            response = await client.request(
                method,
                self._url(path),
                params=params,
                json=json,
                headers={**self._default_headers(), **(headers or {})},
            )
            response.raise_for_status()
        except httpx.HTTPError:
            record_external_request(self.source_name, ok=False)
            raise
        record_external_request(self.source_name, ok=True)
        return response.json()

    async def _fetch_with_breaker(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Raw fetch; subclasses wrap this with @retry and their breaker."""
        return await self._request_json(path, params)

    async def _fetch_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Fetch JSON through retry and circuit breaker protection.

        Raises:
            SourceError: When the source keeps failing or the breaker is open
        """
        try:
            return await self._fetch_with_breaker(path, params)
        except CircuitBreakerError as e:
            logger.warning(f"{self.source_name} circuit breaker is OPEN - skipping {path}")
            raise SourceError(f"{self.source_name} unavailable (circuit open)") from e
        except HTTP_EXCEPTIONS as e:
            logger.error(f"{self.source_name} request failed for {path}: {e}")
            raise SourceError(f"{self.source_name} request failed: {e}") from e

    async def polite_delay(self) -> None:
        """Sleep between calls so batch loops stay under provider rate limits."""
        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)

    async def close(self) -> None:
        """Close the HTTP client if this adapter created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
