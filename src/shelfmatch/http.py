# ABOUTME: Async HTTP client abstraction for catalog and vision service calls.
# ABOUTME: Provides rate limiting, retry with backoff, and injectable transport for testing.

import asyncio
import logging
import time
from typing import Any, Protocol, runtime_checkable

import httpx

from shelfmatch import __version__
from shelfmatch.errors import RateLimitFailure

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class HttpFetchError(Exception):
    """Raised when an HTTP request to an external service fails."""


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for the JSON and binary requests the adapters need."""

    async def get_json(
        self, url: str, params: dict[str, str] | None = None
    ) -> dict[str, Any]: ...

    async def get_bytes(self, url: str) -> bytes: ...

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]: ...


class ShelfmatchHttpClient:
    """HTTP client with rate limiting and retry for external API calls.

    Wraps httpx.AsyncClient with a configurable minimum request interval and
    retry logic for transient failures (429, 5xx). A 429 that survives every
    retry raises RateLimitFailure so callers can tell throttling apart from
    other transport errors.
    """

    def __init__(
        self,
        *,
        min_request_interval: float = 0.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "headers": {"User-Agent": f"shelfmatch/{__version__}"},
            "timeout": timeout,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**client_kwargs)
        self._min_interval = min_request_interval
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._last_request_time: float = 0.0
        self._throttle = asyncio.Lock()

    async def get_json(
        self, url: str, params: dict[str, str] | None = None
    ) -> dict[str, Any]:
        """Send a GET request and return the parsed JSON body."""
        response = await self._send("GET", url, params=params)
        return self._decode(response, url)

    async def get_bytes(self, url: str) -> bytes:
        """Send a GET request and return the raw body (used for images)."""
        response = await self._send("GET", url)
        return response.content

    async def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send a POST request with a JSON body and return the parsed JSON body."""
        response = await self._send(
            "POST", url, json=payload, headers=headers, params=params
        )
        return self._decode(response, url)

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request with rate limiting and retry.

        Raises:
            HttpFetchError: On non-retryable HTTP errors or exhausted 5xx retries.
            RateLimitFailure: When the service is still throttling after all retries.
        """
        await self._rate_limit()

        attempts = 1 + self._max_retries
        last_status = 0
        for attempt in range(attempts):
            try:
                response = await self._client.request(method, url, **kwargs)
                last_status = response.status_code
            except httpx.HTTPError as exc:
                raise HttpFetchError(f"Request failed: {url}: {exc}") from exc

            if response.status_code == 200:
                return response

            if response.status_code not in _RETRYABLE_STATUS_CODES:
                raise HttpFetchError(f"HTTP {response.status_code} from {url}")

            if attempt < attempts - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(
                    "HTTP %d from %s, retrying in %.1fs (attempt %d/%d)",
                    response.status_code,
                    url,
                    delay,
                    attempt + 1,
                    self._max_retries,
                )
                await asyncio.sleep(delay)

        if last_status == 429:
            raise RateLimitFailure(f"Rate limited by {url} after {attempts} attempts")
        raise HttpFetchError(f"HTTP {last_status} from {url} after {attempts} attempts")

    @staticmethod
    def _decode(response: httpx.Response, url: str) -> dict[str, Any]:
        try:
            return response.json()
        except ValueError as exc:
            raise HttpFetchError(f"Invalid JSON from {url}: {exc}") from exc

    async def _rate_limit(self) -> None:
        """Sleep if needed to maintain minimum interval between requests."""
        if self._min_interval <= 0:
            return
        async with self._throttle:
            now = time.monotonic()
            elapsed = now - self._last_request_time
            if elapsed < self._min_interval and self._last_request_time > 0:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()
