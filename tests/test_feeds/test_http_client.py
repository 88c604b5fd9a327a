"""Tests for the retrying HTTP client."""

from unittest.mock import AsyncMock, patch

import httpx
import pytest
import respx

from feedwatch.feeds.http_client import (
    HTTPClient,
    HTTPClientError,
    RateLimitError,
    RetryConfig,
)

URL = "https://www.youtube.com/feeds/videos.xml"


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_calculate_backoff_exponential(self):
        config = RetryConfig(base_delay=1.0, jitter_factor=0.0)

        assert config.calculate_backoff(0) == 1.0
        assert config.calculate_backoff(1) == 2.0
        assert config.calculate_backoff(3) == 8.0

    def test_calculate_backoff_respects_max(self):
        config = RetryConfig(base_delay=1.0, max_backoff_seconds=5.0, jitter_factor=0.0)

        assert config.calculate_backoff(10) == 5.0

    def test_retry_after_extends_delay(self):
        """Retry-After wins over a shorter computed delay, within the cap."""
        config = RetryConfig(base_delay=1.0, max_backoff_seconds=60.0, jitter_factor=0.0)

        assert config.calculate_backoff(0, retry_after=30.0) == 30.0
        assert config.calculate_backoff(0, retry_after=600.0) == 60.0

    def test_jitter_bounds(self):
        config = RetryConfig(base_delay=1.0, jitter_factor=0.5)

        for _ in range(50):
            assert 2.0 <= config.calculate_backoff(1) <= 3.0

    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_retryable_status(self, status):
        assert RetryConfig().is_retryable_status(status) is True

    @pytest.mark.parametrize("status", [200, 400, 401, 404])
    def test_non_retryable_status(self, status):
        assert RetryConfig().is_retryable_status(status) is False

    def test_is_retryable_exception(self):
        config = RetryConfig()

        assert config.is_retryable_exception(httpx.ConnectTimeout("timeout")) is True
        assert config.is_retryable_exception(httpx.ConnectError("refused")) is True
        assert config.is_retryable_exception(ValueError("nope")) is False


class TestHTTPClient:
    """Tests for HTTPClient."""

    @pytest.mark.asyncio
    @respx.mock
    async def test_get_success(self):
        respx.get(URL).mock(return_value=httpx.Response(200, text="<feed/>"))

        async with HTTPClient() as client:
            response = await client.get(URL)

        assert response.status_code == 200
        assert response.text == "<feed/>"

    @pytest.mark.asyncio
    @respx.mock
    async def test_post_json_body(self):
        route = respx.post("https://discord.com/api/webhooks/1/token").mock(
            return_value=httpx.Response(204)
        )

        async with HTTPClient() as client:
            await client.post(
                "https://discord.com/api/webhooks/1/token",
                json_body={"content": "hello"},
            )

        request = route.calls.last.request
        assert request.headers.get("content-type") == "application/json"
        assert b'"content"' in request.content

    @pytest.mark.asyncio
    @respx.mock
    async def test_default_headers(self):
        route = respx.get(URL).mock(return_value=httpx.Response(200))

        async with HTTPClient(headers={"User-Agent": "feedwatch/test"}) as client:
            await client.get(URL)

        assert route.calls.last.request.headers["user-agent"] == "feedwatch/test"

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_on_500_with_success(self):
        call_count = 0

        def side_effect(request):
            nonlocal call_count
            call_count += 1
            if call_count <= 2:
                return httpx.Response(500, text="Server error")
            return httpx.Response(200)

        respx.get(URL).mock(side_effect=side_effect)

        config = RetryConfig(max_retries=3, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            response = await client.get(URL)

        assert response.status_code == 200
        assert call_count == 3

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_after_header_used(self):
        """A 429 Retry-After should drive the sleep duration."""
        responses = iter([
            httpx.Response(429, headers={"Retry-After": "7"}),
            httpx.Response(200),
        ])
        respx.post("https://discord.com/api/webhooks/1/token").mock(
            side_effect=lambda request: next(responses)
        )

        config = RetryConfig(max_retries=1, base_delay=0.01, jitter_factor=0.0)
        with patch("feedwatch.feeds.http_client.asyncio.sleep", new_callable=AsyncMock) as sleep:
            async with HTTPClient(retry_config=config) as client:
                response = await client.post(
                    "https://discord.com/api/webhooks/1/token", json_body={}
                )

        assert response.status_code == 200
        sleep.assert_awaited_once_with(7.0)

    @pytest.mark.asyncio
    @respx.mock
    async def test_rate_limit_error_after_retries_exhausted(self):
        respx.get(URL).mock(return_value=httpx.Response(429, text="Rate limited"))

        config = RetryConfig(max_retries=2, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            with pytest.raises(RateLimitError) as exc_info:
                await client.get(URL)

        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    @respx.mock
    async def test_no_retry_on_4xx(self):
        route = respx.get(URL).mock(return_value=httpx.Response(404, text="Not found"))

        config = RetryConfig(max_retries=3, base_delay=0.01, jitter_factor=0.0)
        async with HTTPClient(retry_config=config) as client:
            with pytest.raises(HTTPClientError) as exc_info:
                await client.get(URL)

        assert route.call_count == 1
        assert exc_info.value.status_code == 404
        assert exc_info.value.response_body == "Not found"

    @pytest.mark.asyncio
    @respx.mock
    async def test_retry_on_timeout_then_give_up(self):
        route = respx.get(URL).mock(side_effect=httpx.ReadTimeout("timed out"))

        config = RetryConfig(max_retries=2, base_delay=0.01, jitter_factor=0.0)
        with patch("feedwatch.feeds.http_client.asyncio.sleep", new_callable=AsyncMock):
            async with HTTPClient(retry_config=config) as client:
                with pytest.raises(HTTPClientError):
                    await client.get(URL)

        assert route.call_count == 3

    @pytest.mark.asyncio
    async def test_requires_context_manager(self):
        with pytest.raises(RuntimeError):
            await HTTPClient().get(URL)

    @pytest.mark.asyncio
    @respx.mock
    async def test_redirect_is_not_success(self):
        """Redirects are not followed, so a 3xx must not count as delivered."""
        route = respx.post("http://discord.com/api/webhooks/1/token").mock(
            return_value=httpx.Response(
                302, headers={"Location": "https://discord.com/api/webhooks/1/token"}
            )
        )

        async with HTTPClient(retry_config=RetryConfig(max_retries=2)) as client:
            with pytest.raises(HTTPClientError) as exc_info:
                await client.post("http://discord.com/api/webhooks/1/token", json_body={})

        assert route.call_count == 1
        assert exc_info.value.status_code == 302
