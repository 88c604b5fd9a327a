"""
HTTP infrastructure layer with retry logic.

Provides:
- RetryConfig: Exponential backoff configuration
- HTTPClient: Async HTTP client with automatic retry

Shared by the feed sources (GET) and the webhook notifier (POST), so
that transport concerns (retries, backoff, rate-limit waits) stay out
of the domain code.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# 429 Too Many Requests plus transient server-side failures
RETRYABLE_STATUSES = frozenset({429, 500, 502, 503, 504})

RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)


@dataclass
class RetryConfig:
    """
    Exponential backoff with jitter for HTTP retries.

    delay = min(max_backoff, max(base_delay * 2^attempt, retry_after))
    plus up to ``jitter_factor`` of that delay at random.
    """

    max_retries: int = 3
    max_backoff_seconds: float = 60.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int, retry_after: float | None = None) -> float:
        """
        Seconds to wait before retry number ``attempt`` (0-indexed).

        A server-provided Retry-After only ever lengthens the wait, and
        never beyond ``max_backoff_seconds``.
        """
        delay = self.base_delay * (2**attempt)
        if retry_after is not None:
            delay = max(delay, retry_after)
        delay = min(delay, self.max_backoff_seconds)
        return delay + delay * self.jitter_factor * random.random()

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in RETRYABLE_STATUSES

    def is_retryable_exception(self, exc: Exception) -> bool:
        """Timeouts and connection errors are retried, anything else is not."""
        return isinstance(exc, RETRYABLE_EXCEPTIONS)


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(HTTPClientError):
    """Raised when rate limit is hit and all retries exhausted."""

    pass


def _parse_retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


class HTTPClient:
    """
    Async HTTP client with retry logic.

    Features:
    - Exponential backoff with jitter on retryable errors
    - Honors Retry-After on 429/503 responses (capped by max backoff)
    - Automatic retry on timeout/connection errors
    - Context manager for proper resource cleanup

    Example:
        async with HTTPClient(RetryConfig(max_retries=3)) as client:
            response = await client.get("https://www.youtube.com/feeds/videos.xml",
                                        params={"channel_id": "UC123"})
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            retry_config: Configuration for retry behavior. Uses defaults if None.
            timeout: Request timeout in seconds.
            headers: Headers sent with every request (e.g. User-Agent).
        """
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self.headers = headers or {}
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        """Enter async context manager, create client."""
        self._client = httpx.AsyncClient(timeout=self.timeout, headers=self.headers)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, close client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform GET request with retry logic.

        Raises:
            HTTPClientError: On non-retryable errors or after retries exhausted
            RateLimitError: When rate limited and retries exhausted
        """
        return await self._request_with_retry("GET", url, params=params, headers=headers)

    async def post(
        self,
        url: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform POST request with retry logic.

        Raises:
            HTTPClientError: On non-retryable errors or after retries exhausted
            RateLimitError: When rate limited and retries exhausted
        """
        return await self._request_with_retry(
            "POST", url, params=params, headers=headers, json_body=json_body
        )

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Send one request, retrying transient failures with backoff.

        Attempts are numbered from 0; ``max_retries`` extra attempts are
        made after the first one.
        """
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        attempts = self.retry_config.max_retries + 1

        for attempt in range(attempts):
            is_last = attempt == attempts - 1
            try:
                response = await self._client.request(
                    method, url, params=params, headers=headers, json=json_body
                )
            except httpx.HTTPError as e:
                if is_last or not self.retry_config.is_retryable_exception(e):
                    raise HTTPClientError(
                        f"{method} {url} failed on attempt {attempt + 1}: {e}"
                    ) from e
                await self._backoff(attempt, url, type(e).__name__)
                continue

            status = response.status_code
            if self.retry_config.is_retryable_status(status) and not is_last:
                await self._backoff(attempt, url, f"status {status}", _parse_retry_after(response))
                continue

            if status == 429:
                raise RateLimitError(
                    f"Rate limit exceeded for {url} after {attempts} attempts",
                    status_code=status,
                    response_body=response.text,
                )
            # Redirects are not followed, so a 3xx is as undelivered as a 4xx
            if not response.is_success:
                raise HTTPClientError(
                    f"{method} {url} failed with status {status}",
                    status_code=status,
                    response_body=response.text,
                )
            return response

        raise HTTPClientError(f"{method} {url} failed after {attempts} attempts")

    async def _backoff(
        self,
        attempt: int,
        url: str,
        reason: str,
        retry_after: float | None = None,
    ) -> None:
        delay = self.retry_config.calculate_backoff(attempt, retry_after)
        logger.warning(
            "Retrying %s (%s), attempt %d/%d, backing off %.2fs",
            url,
            reason,
            attempt + 1,
            self.retry_config.max_retries + 1,
            delay,
        )
        await asyncio.sleep(delay)
